"""
Local file-set resolution.

Expands the ``path``/``glob`` inputs into files, filters them through a
``.gcloudignore`` file and computes each file's object key.
"""

from .expander import (
    ExpandedPaths,
    absolute_root_and_computed_glob,
    expand_glob,
    expand_paths,
)
from .ignore import IgnoreSpec, filter_ignored, parse_ignore_file
from .destination import (
    ObjectUpload,
    compute_destination,
    compute_destinations,
    parse_bucket_and_prefix,
)

__all__ = [
    "ExpandedPaths",
    "absolute_root_and_computed_glob",
    "expand_glob",
    "expand_paths",
    "IgnoreSpec",
    "filter_ignored",
    "parse_ignore_file",
    "ObjectUpload",
    "compute_destination",
    "compute_destinations",
    "parse_bucket_and_prefix",
]
