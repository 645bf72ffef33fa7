"""
Remote object key computation.

Maps a local file (relative to its root) to the object key it is stored
under: ``[prefix/][parent/]relative/file``. Pure functions only.
"""

import os
import posixpath
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from gcs_uploader.paths.expander import to_platform_path, to_posix_path


@dataclass(frozen=True)
class ObjectUpload:
    """
    A single file to upload.

    Attributes:
        source: Absolute local path of the file
        destination: Object key relative to the bucket root
    """

    source: str
    destination: str


def parse_bucket_and_prefix(value: str) -> Tuple[str, str]:
    """
    Split a ``bucket[/prefix]`` destination into its two parts.

    Example:
        >>> parse_bucket_and_prefix(" my-bucket/sub/path ")
        ('my-bucket', 'sub/path')
        >>> parse_bucket_and_prefix("my-bucket")
        ('my-bucket', '')
    """
    trimmed = (value or "").strip()
    bucket, _, prefix = trimmed.partition("/")
    return bucket.strip(), prefix.strip()


def normalize_object_key(*segments: str) -> str:
    """
    Join path segments into an object key.

    Backslashes count as separators; empty and ``.`` segments are dropped;
    ``..`` removes the previous segment and can never climb above the key
    root. The result has no leading or trailing slash.
    """
    parts: List[str] = []
    for segment in segments:
        for part in to_posix_path(segment or "").split("/"):
            if part in ("", "."):
                continue
            if part == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(part)
    return "/".join(parts)


def compute_destination(
    given_root: str,
    relative_file: str,
    prefix: str = "",
    include_parent: bool = False,
) -> str:
    """
    Compute the object key for one file.

    Args:
        given_root: Root as the caller wrote it (only its basename is used)
        relative_file: File path relative to the resolved root
        prefix: Optional key prefix
        include_parent: Whether the root's basename becomes a key segment

    Returns:
        Normalized object key

    Example:
        >>> compute_destination("foo/bar", "file1", prefix="p", include_parent=True)
        'p/bar/file1'
    """
    parent = ""
    if include_parent:
        parent = posixpath.basename(to_posix_path(given_root).rstrip("/"))
    return normalize_object_key(prefix, parent, relative_file)


def compute_destinations(
    given_root: str,
    absolute_root: str,
    files: Sequence[str],
    prefix: str = "",
    include_parent: bool = False,
) -> List[ObjectUpload]:
    """
    Pair every file with its local source path and remote object key.

    The caller is responsible for passing ``include_parent=False`` when the
    given root was a single file.
    """
    uploads = []
    for name in files:
        source = os.path.normpath(os.path.join(absolute_root, to_platform_path(name)))
        destination = compute_destination(given_root, name, prefix, include_parent)
        uploads.append(ObjectUpload(source=source, destination=destination))
    return uploads
