"""Ignore-file support (``.gcloudignore``).

Pattern syntax follows gitignore rules (implemented by
``dulwich.ignore.IgnoreFilter``). ``#!include:<file>`` directives pull in
the patterns of another file, resolved relative to the ignore file.
"""

import posixpath
from pathlib import Path
from typing import List, Optional, Sequence, Set

from dulwich.ignore import IgnoreFilter

from gcs_uploader.utils.logging import get_logger

logger = get_logger(__name__)

INCLUDE_DIRECTIVE = "#!include:"


def parse_ignore_file(path: str, _seen: Optional[Set[Path]] = None) -> List[str]:
    """Read the patterns of an ignore file.

    Blank lines and comments are dropped; ``#!include:`` directives are
    expanded in place. A missing file yields no patterns.
    """
    ignore_path = Path(path)
    seen = _seen if _seen is not None else set()
    resolved = ignore_path.resolve()
    if resolved in seen:
        return []
    seen.add(resolved)

    if not ignore_path.is_file():
        logger.debug(f"No ignore file at {ignore_path}")
        return []

    patterns: List[str] = []
    for raw in ignore_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(INCLUDE_DIRECTIVE):
            included = line[len(INCLUDE_DIRECTIVE):].strip()
            if included:
                patterns.extend(
                    parse_ignore_file(str(ignore_path.parent / included), seen)
                )
            continue
        if line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


class IgnoreSpec:
    """Predicate telling whether a relative path is ignored."""

    def __init__(self, patterns: Sequence[str]) -> None:
        self.patterns = list(patterns)
        self._filter: Optional[IgnoreFilter] = (
            IgnoreFilter([p.encode("utf-8") for p in self.patterns])
            if self.patterns
            else None
        )

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "IgnoreSpec":
        return cls([line.strip() for line in lines if line.strip()])

    @classmethod
    def from_file(cls, path: str) -> "IgnoreSpec":
        return cls(parse_ignore_file(path))

    @property
    def active(self) -> bool:
        """True if any pattern is configured."""
        return self._filter is not None

    def matches(self, rel_path: str) -> bool:
        """Whether *rel_path* (posix) or one of its parent directories is ignored."""
        if self._filter is None:
            return False

        parts = [p for p in rel_path.split("/") if p not in ("", ".")]
        # A file inside an ignored directory cannot be re-included
        for depth in range(1, len(parts)):
            if self._filter.is_ignored("/".join(parts[:depth]) + "/") is True:
                return True
        return self._filter.is_ignored("/".join(parts)) is True


def filter_ignored(
    files: Sequence[str], ignore: Optional[IgnoreSpec] = None, base: str = ""
) -> List[str]:
    """Drop files matched by *ignore*, keeping the input order.

    Args:
        files: Posix paths to filter
        ignore: Ignore predicate; None (or no patterns) keeps every file
        base: Posix prefix joined in front of each file before matching, so
            patterns are evaluated relative to the ignore file's directory
    """
    if ignore is None or not ignore.active:
        return list(files)

    kept = []
    for name in files:
        candidate = posixpath.normpath(posixpath.join(base, name)) if base else name
        try:
            if ignore.matches(candidate):
                logger.debug(f"Ignoring {candidate}")
                continue
        except Exception as error:
            logger.error(f"Failed to process ignore rules for {candidate}, skipping: {error}")
            continue
        kept.append(name)

    logger.info(f"{len(files) - len(kept)} file(s) excluded by ignore rules")
    return kept
