"""
Google Cloud Storage upload orchestration.

Drives the upload of a computed file set through a bounded pool of workers.
Each object gets its own freshly built options, the observer is told about
every object before its transfer starts, and failures are collected until
every upload has settled.

Example usage:
    >>> from gcs_uploader.uploader import UploadOptions, upload_files, GCSObjectStore
    >>> options = UploadOptions(bucket="my-bucket", concurrency=10)
    >>> names = upload_files(uploads, options, GCSObjectStore())
    >>> print(", ".join(names))
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from gcs_uploader.errors import (
    ConcurrencyConfigError,
    ConfigError,
    ObjectUploadError,
    UploadTaskError,
)
from gcs_uploader.paths.destination import ObjectUpload
from gcs_uploader.uploader.headers import ObjectMetadata
from gcs_uploader.utils.executor import run_all
from gcs_uploader.utils.logging import get_logger, log_function_call
from gcs_uploader.utils.metrics import get_metrics

# Module logger
logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 100


class PredefinedAcl(str, Enum):
    """Predefined ACLs accepted by the Cloud Storage JSON API."""

    AUTHENTICATED_READ = "authenticatedRead"
    BUCKET_OWNER_FULL_CONTROL = "bucketOwnerFullControl"
    BUCKET_OWNER_READ = "bucketOwnerRead"
    PRIVATE = "private"
    PROJECT_PRIVATE = "projectPrivate"
    PUBLIC_READ = "publicRead"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["PredefinedAcl"]:
        """Parse an input value; blank means no ACL."""
        if value is None or not value.strip():
            return None
        try:
            return cls(value.strip())
        except ValueError:
            allowed = ", ".join(acl.value for acl in cls)
            raise ConfigError(
                f'Invalid predefinedAcl "{value}" - acceptable values are: {allowed}'
            ) from None


@dataclass
class ObjectUploadOptions:
    """
    Options for a single object, handed to the object store.

    A new instance is built for every object; the store may modify it.

    Attributes:
        destination: Object key relative to the bucket root
        gzip: Upload with gzip content-encoding
        resumable: Use a resumable upload session
        predefined_acl: ACL applied to the new object
        metadata: Object metadata (own copy)
    """

    destination: str
    gzip: bool = True
    resumable: bool = True
    predefined_acl: Optional[PredefinedAcl] = None
    metadata: ObjectMetadata = field(default_factory=ObjectMetadata)


@dataclass
class StoredObject:
    """
    Object created by the store.

    Attributes:
        name: Object key
        bucket: Bucket name
        generation: Object generation, when reported
        size: Uploaded size in bytes, when reported
    """

    name: str
    bucket: str
    generation: Optional[int] = None
    size: Optional[int] = None


class ObjectStore(Protocol):
    """Capability that stores one local file as an object."""

    def store_object(
        self, bucket: str, source: str, options: ObjectUploadOptions
    ) -> StoredObject:
        ...


class UploadObserver:
    """Receives a notification each time an object upload begins."""

    def on_upload_object(
        self, source: str, destination: str, options: ObjectUploadOptions
    ) -> None:
        pass


class NullUploadObserver(UploadObserver):
    """Observer that does nothing."""


class LoggingUploadObserver(UploadObserver):
    """Observer that logs every object as it starts uploading."""

    def on_upload_object(
        self, source: str, destination: str, options: ObjectUploadOptions
    ) -> None:
        logger.info(f"Uploading {source} to gs://{destination}")
        logger.debug(
            f"Upload options for {destination}: gzip={options.gzip}, "
            f"resumable={options.resumable}, "
            f"predefinedAcl={options.predefined_acl.value if options.predefined_acl else None}, "
            f"metadata={options.metadata.to_dict()}"
        )


@dataclass(frozen=True)
class UploadOptions:
    """
    Settings shared by every object of one run.

    Never handed to the store directly; per-object options are built from it.

    Attributes:
        bucket: Destination bucket name
        concurrency: Maximum number of simultaneous uploads (at least 1)
        gzip: Upload with gzip content-encoding
        resumable: Use resumable upload sessions
        predefined_acl: ACL applied to every new object
        metadata: Metadata applied to every object
        observer: Notified when each object upload begins
    """

    bucket: str
    concurrency: int = DEFAULT_CONCURRENCY
    gzip: bool = True
    resumable: bool = True
    predefined_acl: Optional[PredefinedAcl] = None
    metadata: Optional[ObjectMetadata] = None
    observer: UploadObserver = field(default_factory=NullUploadObserver)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConcurrencyConfigError(self.concurrency)

    def for_object(self, destination: str) -> ObjectUploadOptions:
        """Build fresh options for one object."""
        metadata = self.metadata.copy() if self.metadata else ObjectMetadata()
        return ObjectUploadOptions(
            destination=destination,
            gzip=self.gzip,
            resumable=self.resumable,
            predefined_acl=self.predefined_acl,
            metadata=metadata,
        )


def _upload_task(
    upload: ObjectUpload, options: UploadOptions, store: ObjectStore
) -> Callable[[], str]:
    def task() -> str:
        object_options = options.for_object(upload.destination)

        # Observer errors are a caller bug; they are reported as-is
        options.observer.on_upload_object(
            upload.source,
            posixpath.join(options.bucket, upload.destination),
            object_options,
        )

        try:
            stored = store.store_object(options.bucket, upload.source, object_options)
        except Exception as error:
            raise ObjectUploadError(upload.source, upload.destination, error) from error

        return stored.name

    return task


@log_function_call
def upload_files(
    files: Sequence[ObjectUpload], options: UploadOptions, store: ObjectStore
) -> List[str]:
    """
    Upload every file with at most ``options.concurrency`` transfers in flight.

    Args:
        files: Files to upload with their object keys
        options: Settings shared by the whole run
        store: Object store performing each transfer

    Returns:
        Names of the uploaded objects, in the order of ``files``

    Raises:
        UploadTaskError: After every upload settled, if any failed. The
            message has one line per failed file.
    """
    if not files:
        logger.info("No files to upload")
        return []

    logger.info(
        f"Uploading {len(files)} file(s) to gs://{options.bucket} "
        f"(concurrency: {options.concurrency})"
    )

    metrics = get_metrics()
    tasks = [_upload_task(upload, options, store) for upload in files]
    try:
        with metrics.track_run():
            names = run_all(tasks, options.concurrency, error_class=UploadTaskError)
    except UploadTaskError as error:
        logger.error(
            f"{len(error.errors)} of {len(files)} upload(s) failed",
        )
        raise

    logger.info(f"Uploaded {len(names)} file(s) to gs://{options.bucket}")
    return names
