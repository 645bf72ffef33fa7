"""
Google Cloud Storage uploader module.

Uploads a computed file set to a GCS bucket with bounded concurrency,
object metadata parsed from the ``headers`` input, gzip content-encoding,
resumable sessions and predefined ACLs.
"""

from .headers import ObjectMetadata, parse_headers
from .uploader import (
    DEFAULT_CONCURRENCY,
    LoggingUploadObserver,
    NullUploadObserver,
    ObjectStore,
    ObjectUploadOptions,
    PredefinedAcl,
    StoredObject,
    UploadObserver,
    UploadOptions,
    upload_files,
)
from .storage import GCSObjectStore

__all__ = [
    "DEFAULT_CONCURRENCY",
    "GCSObjectStore",
    "LoggingUploadObserver",
    "NullUploadObserver",
    "ObjectMetadata",
    "ObjectStore",
    "ObjectUploadOptions",
    "PredefinedAcl",
    "StoredObject",
    "UploadObserver",
    "UploadOptions",
    "parse_headers",
    "upload_files",
]
