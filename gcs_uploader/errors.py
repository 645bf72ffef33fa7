"""
Exception hierarchy for the GCS uploader.

Filesystem and configuration errors are raised before any upload starts.
Per-object upload errors are collected and raised together once every
upload has settled.
"""

from typing import List


class UploaderError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(UploaderError):
    """An action input is missing or malformed."""


class NotFoundError(UploaderError):
    """The local root path does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'root "path" does not exist: {path}')


class ConflictingGlobError(UploaderError):
    """A glob was given together with a root that points to a single file."""

    def __init__(self, path: str, glob: str) -> None:
        self.path = path
        self.glob = glob
        super().__init__(
            f'root "path" points to a file ({path}), but "glob" was also given ({glob})'
        )


class HeaderParseError(UploaderError):
    """A line of the ``headers`` input could not be parsed."""


class InvalidHeaderError(HeaderParseError):
    """A header key is neither settable nor prefixed with ``x-goog-meta-``."""


class DuplicateHeaderError(HeaderParseError):
    """The same header key appears more than once."""


class ConcurrencyConfigError(UploaderError):
    """The requested concurrency is below 1."""

    def __init__(self, concurrency: int) -> None:
        self.concurrency = concurrency
        super().__init__(f"concurrency must be at least 1, got {concurrency}")


class ObjectUploadError(UploaderError):
    """A single object failed to upload."""

    def __init__(self, source: str, destination: str, cause: BaseException) -> None:
        self.source = source
        self.destination = destination
        self.cause = cause
        super().__init__(f"failed to upload {source} to {destination}: {cause}")


class TaskGroupError(UploaderError):
    """One or more tasks of a concurrent run failed."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        lines = [f"{len(self.errors)} error(s) occurred:"]
        lines.extend(f"- {message}" for message in self.errors)
        super().__init__("\n".join(lines))


class UploadTaskError(TaskGroupError):
    """One or more object uploads failed."""
