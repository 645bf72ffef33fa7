"""
Parsing of the ``headers`` input into object metadata.

The input is one ``key: value`` pair per line. Settable fields are
``cache-control``, ``content-disposition``, ``content-encoding``,
``content-language``, ``content-type`` and ``custom-time``; custom metadata
keys must be prefixed with ``x-goog-meta-``. Any other key is rejected.

Example usage:
    >>> metadata = parse_headers("content-type: application/json\\nx-goog-meta-team: web")
    >>> metadata.content_type
    'application/json'
    >>> dict(metadata.custom)
    {'team': 'web'}
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional

from gcs_uploader.errors import (
    DuplicateHeaderError,
    HeaderParseError,
    InvalidHeaderError,
)

CUSTOM_METADATA_PREFIX = "x-goog-meta-"

_FRACTION = re.compile(r"\.(\d+)")

# Header name -> ObjectMetadata attribute
SETTABLE_HEADERS = {
    "cache-control": "cache_control",
    "content-disposition": "content_disposition",
    "content-encoding": "content_encoding",
    "content-language": "content_language",
    "content-type": "content_type",
    "custom-time": "custom_time",
}


@dataclass(frozen=True)
class ObjectMetadata:
    """
    Metadata applied to every uploaded object.

    Attributes:
        cache_control: Cache-Control header
        content_disposition: Content-Disposition header
        content_encoding: Content-Encoding header
        content_language: Content-Language header
        content_type: Content-Type header
        custom_time: RFC 3339 timestamp for the Custom-Time field
        custom: Custom metadata, keys without the ``x-goog-meta-`` prefix
    """

    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_type: Optional[str] = None
    custom_time: Optional[str] = None
    custom: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> "ObjectMetadata":
        """Return an independent copy (the custom map is not shared)."""
        return replace(self, custom=dict(self.custom))

    def to_dict(self) -> Dict[str, object]:
        """Render using the Cloud Storage JSON API field names."""
        rendered: Dict[str, object] = {}
        names = {
            "cache_control": "cacheControl",
            "content_disposition": "contentDisposition",
            "content_encoding": "contentEncoding",
            "content_language": "contentLanguage",
            "content_type": "contentType",
            "custom_time": "customTime",
        }
        for attr, api_name in names.items():
            value = getattr(self, attr)
            if value is not None:
                rendered[api_name] = value
        if self.custom:
            rendered["metadata"] = dict(self.custom)
        return rendered


def parse_custom_time(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp such as ``2024-01-01T00:00:00Z``.

    Raises:
        ValueError: If the value is not a timezone-aware timestamp
    """
    text = value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    # fromisoformat only accepts 3 or 6 fractional digits before Python 3.11
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no timezone: {value}")
    return parsed


def parse_header_lines(text: str) -> Dict[str, str]:
    """
    Split the raw input into an ordered key/value mapping.

    Raises:
        HeaderParseError: If a line has no ``:``, an empty key or an empty value
        DuplicateHeaderError: If a key is repeated
    """
    headers: Dict[str, str] = {}

    for index, raw in enumerate(re.split(r"\r?\n", text or "")):
        line = raw.strip()
        if not line:
            continue

        key, sep, value = line.partition(":")
        if not sep:
            raise HeaderParseError(
                f'Failed to parse header line {index} ("{line}") - '
                f'the expected format is "key: value"'
            )

        key = key.strip()
        value = value.strip()
        if not key:
            raise HeaderParseError(f'Failed to parse header line {index} ("{line}") - missing key')
        if not value:
            raise HeaderParseError(f'Failed to parse header line {index} ("{line}") - missing value')

        if key in headers:
            raise DuplicateHeaderError(
                f'Failed to parse header line {index} ("{line}") - key "{key}" already '
                f"exists, possibly from a previous line"
            )
        headers[key] = value

    return headers


def parse_headers(text: str) -> ObjectMetadata:
    """
    Parse the ``headers`` input into ObjectMetadata.

    Args:
        text: Multi-line ``key: value`` input

    Returns:
        Parsed metadata (all fields empty for blank input)

    Raises:
        HeaderParseError: On a malformed line
        DuplicateHeaderError: On a repeated key
        InvalidHeaderError: On a key that is neither settable nor custom
    """
    fields: Dict[str, str] = {}
    custom: Dict[str, str] = {}

    for key, value in parse_header_lines(text).items():
        if key.startswith(CUSTOM_METADATA_PREFIX):
            custom[key[len(CUSTOM_METADATA_PREFIX):]] = value
            continue

        attr = SETTABLE_HEADERS.get(key)
        if attr is None:
            raise InvalidHeaderError(
                f'Invalid header key "{key}" - custom header keys must be '
                f'prefixed with "{CUSTOM_METADATA_PREFIX}"'
            )
        if attr == "custom_time":
            try:
                parse_custom_time(value)
            except ValueError:
                raise HeaderParseError(
                    f'Invalid "custom-time" value "{value}" - expected an RFC 3339 timestamp'
                ) from None
        fields[attr] = value

    return ObjectMetadata(custom=custom, **fields)
