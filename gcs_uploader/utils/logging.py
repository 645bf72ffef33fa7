"""
Logging utilities for the GCS uploader.

Provides structured logging with entry/exit decorators, JSON formatting,
GitHub Actions workflow-command output, correlation IDs, and consistent
formatting across all upload stages.

Features:
    - Workflow-command output (``::warning::``, ``::error::``) on Actions runners
    - Structured JSON logging for log shipping
    - Correlation ID tracking across a run
    - Entry/exit decorators with timing
    - Colorized console output for local runs

Example usage:
    >>> from gcs_uploader.utils.logging import get_logger, log_function_call
    >>>
    >>> logger = get_logger(__name__)
    >>>
    >>> @log_function_call
    >>> def expand(root: str) -> list:
    >>>     logger.info("Expanding root", extra={"root": root})
    >>>     return []
"""

import logging
import functools
import json
import os
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast
from datetime import datetime, timezone
from contextvars import ContextVar

import coloredlogs

# Type variable for generic decorator typing
F = TypeVar("F", bound=Callable[..., Any])

# Context variable for correlation ID
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Global logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


def resolve_log_format() -> str:
    """
    Pick the output format for this process.

    ``LOG_FORMAT`` wins when set (``text``, ``json`` or ``github``). Otherwise
    runs inside GitHub Actions (``GITHUB_ACTIONS=true``) use ``github``.

    Returns:
        One of ``"text"``, ``"json"``, ``"github"``
    """
    explicit = os.getenv("LOG_FORMAT", "").strip().lower()
    if explicit in ("text", "json", "github"):
        return explicit
    if os.getenv("GITHUB_ACTIONS", "").lower() == "true":
        return "github"
    return "text"


# ============================================================================
# Correlation ID Management
# ============================================================================

def get_correlation_id() -> str:
    """
    Get current correlation ID or generate new one.

    Returns:
        Current correlation ID (generates UUID if not set)
    """
    corr_id = _correlation_id.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        _correlation_id.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    """Clear correlation ID for current context."""
    _correlation_id.set(None)


# ============================================================================
# Formatters
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs in JSON format with standard fields and custom metadata.

    Example output:
        {
            "timestamp": "2026-01-04T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "gcs_uploader.uploader.uploader",
            "message": "Uploading 3 file(s)",
            "correlation_id": "0b6c...",
            "extra": {"bucket": "my-bucket"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data["environment"] = {
            "hostname": os.getenv("HOSTNAME", "unknown"),
            "runner": os.getenv("RUNNER_NAME", ""),
            "workflow": os.getenv("GITHUB_WORKFLOW", ""),
        }

        return json.dumps(log_data, default=str)


def escape_command_data(value: str) -> str:
    """Escape a message for use as workflow-command data."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class GitHubActionsFormatter(logging.Formatter):
    """
    Formatter that speaks the GitHub Actions workflow-command protocol.

    DEBUG records become ``::debug::``, WARNING ``::warning::`` and ERROR or
    above ``::error::`` so they surface as annotations on the run. INFO is
    printed as-is.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if record.levelno >= logging.ERROR:
            return f"::error::{escape_command_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"::warning::{escape_command_data(message)}"
        if record.levelno <= logging.DEBUG:
            return f"::debug::{escape_command_data(message)}"
        return message


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to enable colorized console output (default: True)

    Example:
        >>> os.environ["LOG_FORMAT"] = "json"
        >>> setup_logging(level="INFO")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    log_format = resolve_log_format()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    # Workflow commands must go to stdout to be picked up by the runner
    stream = sys.stdout if log_format == "github" else sys.stderr
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(log_level)

    if log_format == "json":
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif log_format == "github":
        # The runner decides whether ::debug:: lines are shown
        root_logger.setLevel(logging.DEBUG)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(GitHubActionsFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
            stream=stream,
        )
    else:
        console_handler.setFormatter(
            logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        )
        root_logger.addHandler(console_handler)

    # The storage client is chatty at DEBUG
    logging.getLogger("google").setLevel(max(log_level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


@contextmanager
def log_group(title: str) -> Iterator[None]:
    """
    Fold the enclosed output into a collapsible group on Actions runners.

    Outside of the ``github`` log format this only logs the title.
    """
    if resolve_log_format() == "github":
        sys.stdout.write(f"::group::{escape_command_data(title)}\n")
        sys.stdout.flush()
        try:
            yield
        finally:
            sys.stdout.write("::endgroup::\n")
            sys.stdout.flush()
    else:
        logging.getLogger(__name__).info(title)
        yield


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with parameters and return values.

    - Logs function entry with all parameter values
    - Logs function exit with return value and execution time
    - Logs exceptions with full traceback and re-raises them

    Entry and exit are logged at DEBUG; failures at ERROR.

    Args:
        func: Function to be decorated

    Returns:
        Wrapped function with logging
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        correlation_id = get_correlation_id()

        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
        kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]
        all_args = ", ".join(args_repr + kwargs_repr)

        logger.debug(
            f"ENTER {func.__name__}({all_args})",
            extra={
                "function": func.__name__,
                "function_module": func.__module__,
                "correlation_id": correlation_id,
                "event": "function_entry",
            },
        )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)

            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(
                f"EXIT {func.__name__} -> {result!r} ({execution_time:.2f}s)",
                extra={
                    "function": func.__name__,
                    "function_module": func.__module__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_exit",
                    "status": "success",
                },
            )

            return result

        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "function_module": func.__module__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_error",
                    "status": "error",
                    "error_type": type(error).__name__,
                },
            )

            # Re-raise exception to preserve original behavior
            raise

    return cast(F, wrapper)
