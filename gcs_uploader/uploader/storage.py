"""
Google Cloud Storage object store.

Stores one local file as one object using the google-cloud-storage SDK.
Handles object metadata, gzip content-encoding, resumable sessions and
predefined ACLs. Authentication uses Application Default Credentials, which
is what ``google-github-actions/auth`` sets up on a runner.

Example usage:
    >>> store = GCSObjectStore(project_id="my-project")
    >>> stored = store.store_object(
    ...     "my-bucket", "/repo/dist/app.js", ObjectUploadOptions(destination="web/app.js")
    ... )
    >>> stored.name
    'web/app.js'
"""

import gzip
import mimetypes
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

from google.api_core.client_info import ClientInfo
from google.cloud import storage
from google.cloud.storage.retry import DEFAULT_RETRY

from gcs_uploader import __version__
from gcs_uploader.uploader.headers import ObjectMetadata, parse_custom_time
from gcs_uploader.uploader.uploader import ObjectUploadOptions, StoredObject
from gcs_uploader.utils.logging import get_logger
from gcs_uploader.utils.metrics import get_metrics
from gcs_uploader.utils.retry import is_transient_error, retry_with_backoff

# Module logger
logger = get_logger(__name__)

USER_AGENT = f"gcs-uploader/{__version__}"
DEFAULT_UNIVERSE = "googleapis.com"

# Resumable sessions upload in chunks; must be a multiple of 256 KiB
RESUMABLE_CHUNK_SIZE = 8 * 1024 * 1024

# Retry policy for API calls: 1s initial delay, x2 multiplier, 30s cap,
# 500s total. Retries unconditionally since every upload overwrites.
UPLOAD_RETRY = DEFAULT_RETRY.with_delay(initial=1.0, maximum=30.0, multiplier=2.0).with_deadline(500.0)

MAX_RETRIES = 3
UPLOAD_TIMEOUT_SECONDS = 300
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(source: str) -> str:
    """Guess the MIME type of a local file from its name."""
    content_type, _ = mimetypes.guess_type(source)
    return content_type or DEFAULT_CONTENT_TYPE


def apply_metadata(blob: storage.Blob, metadata: ObjectMetadata) -> None:
    """Copy ObjectMetadata onto a blob before upload."""
    if metadata.cache_control is not None:
        blob.cache_control = metadata.cache_control
    if metadata.content_disposition is not None:
        blob.content_disposition = metadata.content_disposition
    if metadata.content_encoding is not None:
        blob.content_encoding = metadata.content_encoding
    if metadata.content_language is not None:
        blob.content_language = metadata.content_language
    if metadata.content_type is not None:
        blob.content_type = metadata.content_type
    if metadata.custom_time is not None:
        blob.custom_time = parse_custom_time(metadata.custom_time)
    if metadata.custom:
        blob.metadata = dict(metadata.custom)


@retry_with_backoff(
    max_attempts=MAX_RETRIES,
    base_delay=2.0,
    max_delay=30.0,
    backoff_multiplier=2.0,
    jitter=True,
    retry_if=is_transient_error,
)
def _perform_gcs_upload(
    blob: storage.Blob,
    filename: str,
    content_type: str,
    predefined_acl: Optional[str],
) -> None:
    """
    Upload *filename* into *blob*.

    Retried with backoff on transient errors that escape the client's own
    retry policy.
    """
    blob.upload_from_filename(
        filename,
        content_type=content_type,
        predefined_acl=predefined_acl,
        retry=UPLOAD_RETRY,
        timeout=UPLOAD_TIMEOUT_SECONDS,
    )


class GCSObjectStore:
    """
    Object store backed by Google Cloud Storage.

    The underlying client is created on first use and shared by every worker
    thread.

    Args:
        project_id: Project used for billing and API requests (inferred from
            the environment if None)
        universe: Universe domain for API endpoints
        client: Pre-built ``storage.Client`` (tests, custom credentials)
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        universe: str = DEFAULT_UNIVERSE,
        client: Optional[storage.Client] = None,
    ) -> None:
        self.project_id = project_id
        self.universe = universe or DEFAULT_UNIVERSE
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> storage.Client:
        with self._lock:
            if self._client is None:
                client_options = None
                if self.universe != DEFAULT_UNIVERSE:
                    client_options = {"universe_domain": self.universe}
                self._client = storage.Client(
                    project=self.project_id,
                    client_info=ClientInfo(user_agent=USER_AGENT),
                    client_options=client_options,
                )
                logger.debug(f"Created storage client (universe: {self.universe})")
            return self._client

    def store_object(
        self, bucket: str, source: str, options: ObjectUploadOptions
    ) -> StoredObject:
        """
        Upload one local file.

        Args:
            bucket: Destination bucket name
            source: Absolute local path
            options: Per-object options

        Returns:
            StoredObject describing the created object

        Raises:
            Exception: Whatever the storage client raised after retries
        """
        metrics = get_metrics()
        blob = self.client.bucket(bucket).blob(
            options.destination,
            chunk_size=RESUMABLE_CHUNK_SIZE if options.resumable else None,
        )
        apply_metadata(blob, options.metadata)

        content_type = options.metadata.content_type or guess_content_type(source)
        predefined_acl = options.predefined_acl.value if options.predefined_acl else None
        size = os.path.getsize(source)

        logger.debug(
            f"Executing GCS upload: {source} -> gs://{bucket}/{options.destination} "
            f"({size} bytes, gzip={options.gzip}, resumable={options.resumable})"
        )

        try:
            with metrics.track_upload():
                if options.gzip:
                    blob.content_encoding = "gzip"
                    size = self._upload_gzipped(blob, source, content_type, predefined_acl)
                else:
                    _perform_gcs_upload(blob, source, content_type, predefined_acl)
        except Exception as error:
            metrics.record_upload_failure()
            metrics.record_gcs_error(operation="upload", error_type=type(error).__name__)
            raise

        metrics.record_upload_success(bytes_uploaded=size)

        return StoredObject(
            name=blob.name,
            bucket=bucket,
            generation=blob.generation,
            size=blob.size if blob.size is not None else size,
        )

    def _upload_gzipped(
        self,
        blob: storage.Blob,
        source: str,
        content_type: str,
        predefined_acl: Optional[str],
    ) -> int:
        """Compress *source* into a temporary file and upload that instead."""
        with tempfile.TemporaryDirectory(prefix="gcs-uploader-") as workdir:
            compressed = Path(workdir) / (Path(source).name + ".gz")
            with open(source, "rb") as src, gzip.open(compressed, "wb") as dst:
                shutil.copyfileobj(src, dst)
            _perform_gcs_upload(blob, str(compressed), content_type, predefined_acl)
            return compressed.stat().st_size
