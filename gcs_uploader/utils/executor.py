"""
Bounded-concurrency task runner.

Runs a list of independent, blocking callables on a fixed pool of worker
threads. Every task runs to completion regardless of how the others fare;
failures are collected per task and reported together once the whole set
has settled.

Example usage:
    >>> from gcs_uploader.utils.executor import run_all
    >>> run_all([lambda: 1, lambda: 2], concurrency=2)
    [1, 2]
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, Type, TypeVar

from gcs_uploader.errors import ConcurrencyConfigError, TaskGroupError
from gcs_uploader.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    """
    Result slot for one task.

    Attributes:
        ok: Whether the task returned normally
        value: Return value of the task (None on failure)
        error: Single-line failure message (None on success)
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "TaskOutcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "TaskOutcome[T]":
        message = str(error) or type(error).__name__
        if not isinstance(error, Exception):
            message = f"{type(error).__name__}: {message}"
        return cls(ok=False, error=" ".join(message.splitlines()))


def effective_concurrency(requested: int, task_count: int) -> int:
    """
    Clamp the requested concurrency to the number of tasks.

    Args:
        requested: Concurrency asked for by the caller
        task_count: Number of tasks that will run

    Returns:
        Worker count, at least 1 and at most ``task_count``

    Raises:
        ConcurrencyConfigError: If ``requested`` is below 1
    """
    if requested < 1:
        raise ConcurrencyConfigError(requested)
    return max(1, min(requested, task_count))


def settle_all(
    tasks: Sequence[Callable[[], T]], concurrency: int
) -> List[TaskOutcome[T]]:
    """
    Run every task and return one outcome per task, in task order.

    Never raises for task failures; see ``run_all`` for the raising variant.
    """
    workers = effective_concurrency(concurrency, len(tasks))
    outcomes: List[Optional[TaskOutcome[T]]] = [None] * len(tasks)
    if not tasks:
        return []

    def _run(index: int, task: Callable[[], T]) -> None:
        try:
            outcomes[index] = TaskOutcome.success(task())
        except Exception as error:
            logger.debug(f"Task {index} failed: {error}")
            outcomes[index] = TaskOutcome.failure(error)

    logger.debug(f"Running {len(tasks)} task(s) on {workers} worker(s)")

    # Tasks are queued FIFO; the pool never runs more than `workers` at once.
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_run, index, task) for index, task in enumerate(tasks)]

    # A slot is only left empty when the task raised a BaseException
    # (SystemExit, KeyboardInterrupt); the future still holds it.
    settled: List[TaskOutcome[T]] = []
    for index, (outcome, future) in enumerate(zip(outcomes, futures)):
        if outcome is None:
            error = future.exception() or RuntimeError("task did not complete")
            logger.debug(f"Task {index} did not complete: {error!r}")
            outcome = TaskOutcome.failure(error)
        settled.append(outcome)
    return settled


def run_all(
    tasks: Sequence[Callable[[], T]],
    concurrency: int,
    error_class: Type[TaskGroupError] = TaskGroupError,
) -> List[T]:
    """
    Run every task with at most ``concurrency`` in flight.

    Args:
        tasks: Zero-argument callables
        concurrency: Maximum number of tasks running at the same time
        error_class: Aggregate error type raised on failure

    Returns:
        Task return values in task order

    Raises:
        ConcurrencyConfigError: If ``concurrency`` is below 1
        TaskGroupError: After all tasks settled, if any of them failed.
            The message lists every failure on its own line.
    """
    outcomes = settle_all(tasks, concurrency)

    errors = [outcome.error or "" for outcome in outcomes if not outcome.ok]
    if errors:
        logger.debug(f"{len(errors)} of {len(outcomes)} task(s) failed")
        raise error_class(errors)

    return [outcome.value for outcome in outcomes]  # type: ignore[misc]
