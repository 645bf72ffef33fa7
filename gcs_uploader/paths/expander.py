"""
Local path and glob expansion.

Turns the user's ``path`` input (one root, or several separated by newlines)
and optional ``glob`` into the list of files to upload. Roots are resolved
against an explicit workspace directory, never against ambient process state.

Example usage:
    >>> from gcs_uploader.paths import expand_paths
    >>> expanded = expand_paths("./dist", "**/*.js", workspace="/repo")
    >>> expanded.files
    ['app.js', 'vendor/lib.js']
"""

import os
import posixpath
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from gcs_uploader.errors import ConflictingGlobError, NotFoundError
from gcs_uploader.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

# Used when no glob is given: every file, recursively, dotfiles included
MATCH_ALL_GLOB = "**/*"


@dataclass
class ExpandedPaths:
    """
    Result of expanding the ``path`` input.

    Attributes:
        given_root: Root exactly as the caller wrote it (the workspace when
            several roots were given)
        absolute_root: Absolute directory every entry of ``files`` is relative to
        files: Posix paths of regular files, relative to ``absolute_root``
        root_is_dir: Whether the given root was a directory
    """

    given_root: str
    absolute_root: str
    files: List[str] = field(default_factory=list)
    root_is_dir: bool = True


def to_posix_path(value: str) -> str:
    """Convert platform separators to forward slashes."""
    return value.replace("\\", "/")


def to_platform_path(value: str) -> str:
    """Convert forward and back slashes to the platform separator."""
    return value.replace("\\", "/").replace("/", os.sep)


def split_path_input(path_input: str) -> List[str]:
    """Split a multi-line ``path`` input into trimmed, non-blank roots."""
    return [line.strip() for line in path_input.splitlines() if line.strip()]


def absolute_root_and_computed_glob(
    root: str, glob: str, workspace: str
) -> Tuple[str, str, bool]:
    """
    Resolve ``root`` to an absolute directory and the glob to search it with.

    When ``root`` points to a file, the parent directory becomes the root
    and the glob becomes the file's basename.

    Args:
        root: File or directory, absolute or relative to ``workspace``
        glob: Caller-supplied glob (may be empty)
        workspace: Directory relative roots are resolved against

    Returns:
        (absolute_root, computed_glob, root_is_dir)

    Raises:
        NotFoundError: If the resolved path does not exist
        ConflictingGlobError: If ``root`` is a file and ``glob`` is not empty
    """
    resolved = os.path.normpath(
        os.path.join(os.path.abspath(workspace), to_platform_path(root))
    )

    try:
        mode = os.lstat(resolved).st_mode
    except FileNotFoundError:
        raise NotFoundError(resolved) from None

    # Symlinks are not followed here: only a regular file is a file root
    if stat.S_ISREG(mode):
        if glob:
            raise ConflictingGlobError(resolved, glob)
        return (
            os.path.dirname(resolved),
            to_posix_path(os.path.basename(resolved)),
            False,
        )

    return resolved, to_posix_path(glob), True


def normalize_glob(glob: str) -> str:
    """
    Convert a user glob into a pattern for ``Path.glob``.

    A trailing ``**`` matches every file below it, not only directories
    (``pathlib`` before Python 3.13 yields directories alone).

    Example:
        >>> normalize_glob("dist/**")
        'dist/**/*'
    """
    pattern = to_posix_path(glob)
    if not pattern:
        return MATCH_ALL_GLOB
    if pattern.rstrip("/").split("/")[-1] == "**":
        pattern = pattern.rstrip("/") + "/*"
    return pattern


def expand_glob(directory: str, glob: str) -> List[str]:
    """
    List every regular file under ``directory`` matching ``glob``.

    Args:
        directory: Absolute directory to search
        glob: Posix glob relative to ``directory``; empty matches everything

    Returns:
        Sorted, duplicate-free posix paths relative to ``directory``
    """
    pattern = normalize_glob(glob)
    base = Path(directory)

    found = set()

    # File roots arrive as their basename, which may contain glob characters
    literal = base / pattern
    if literal.is_file():
        found.add(literal.relative_to(base).as_posix())

    for match in base.glob(pattern):
        if match.is_file():
            found.add(match.relative_to(base).as_posix())

    return sorted(found)


@log_function_call
def expand_paths(path_input: str, glob: str, workspace: str) -> ExpandedPaths:
    """
    Expand the ``path`` input into the set of files to upload.

    A single root yields files relative to that root, sorted. Several roots
    are each expanded with the same glob; their files are expressed relative
    to ``workspace`` and concatenated in first-seen order with duplicates
    dropped.

    Args:
        path_input: One root, or several separated by newlines
        glob: Glob applied to every root (may be empty)
        workspace: Directory relative roots are resolved against

    Returns:
        ExpandedPaths describing the matched files

    Raises:
        NotFoundError: If no root was given or a root does not exist
        ConflictingGlobError: If a file root is combined with a glob
    """
    roots = split_path_input(path_input)
    if not roots:
        raise NotFoundError(path_input)

    if len(roots) == 1:
        absolute_root, computed_glob, root_is_dir = absolute_root_and_computed_glob(
            roots[0], glob, workspace
        )
        files = expand_glob(absolute_root, computed_glob)
        logger.info(f"Found {len(files)} file(s) under {absolute_root}")
        return ExpandedPaths(
            given_root=roots[0],
            absolute_root=absolute_root,
            files=files,
            root_is_dir=root_is_dir,
        )

    workspace_root = os.path.abspath(workspace)
    seen = set()
    all_files: List[str] = []

    for root in roots:
        absolute_root, computed_glob, _ = absolute_root_and_computed_glob(
            root, glob, workspace_root
        )
        for name in expand_glob(absolute_root, computed_glob):
            full_path = os.path.join(absolute_root, to_platform_path(name))
            relative = to_posix_path(os.path.relpath(full_path, workspace_root))
            relative = posixpath.normpath(relative)
            if relative not in seen:
                seen.add(relative)
                all_files.append(relative)

    logger.info(f"Found {len(all_files)} file(s) across {len(roots)} paths")
    return ExpandedPaths(
        given_root=workspace_root,
        absolute_root=workspace_root,
        files=all_files,
        root_is_dir=True,
    )
