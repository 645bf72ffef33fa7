"""
End-to-end upload step.

Wires the stages together: headers and destination are parsed, the ``path``
input is expanded, ``.gcloudignore`` rules are applied, object keys are
computed and the files are uploaded. Configuration and filesystem problems
raise before any upload starts.

Example usage:
    >>> from gcs_uploader.action import run_action
    >>> from gcs_uploader.utils.config import get_config
    >>> names = run_action(get_config())
"""

import os
import uuid
from typing import List, Optional

from gcs_uploader.errors import ConfigError
from gcs_uploader.paths import (
    IgnoreSpec,
    compute_destinations,
    expand_paths,
    filter_ignored,
    parse_bucket_and_prefix,
)
from gcs_uploader.paths.expander import to_platform_path, to_posix_path
from gcs_uploader.uploader import (
    GCSObjectStore,
    LoggingUploadObserver,
    ObjectStore,
    UploadObserver,
    UploadOptions,
    parse_headers,
    upload_files,
)
from gcs_uploader.utils.config import ActionConfig
from gcs_uploader.utils.logging import get_logger, log_function_call, log_group

logger = get_logger(__name__)


def set_output(name: str, value: str, output_path: Optional[str]) -> None:
    """
    Publish a step output.

    Appends to the runner's ``GITHUB_OUTPUT`` file using the delimiter
    syntax, which is safe for any value. Without an output file the value
    is only logged.
    """
    if not output_path:
        logger.info(f"Output {name}: {value}")
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(output_path, "a", encoding="utf-8") as handle:
        handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def load_ignore_spec(config: ActionConfig) -> Optional[IgnoreSpec]:
    """Load the ignore file named by the config, relative to the workspace."""
    if not config.process_gcloudignore:
        return None

    ignore_path = os.path.join(
        os.path.abspath(config.workspace), to_platform_path(config.gcloudignore_path)
    )
    spec = IgnoreSpec.from_file(ignore_path)
    if spec.active:
        logger.info(f"Using {len(spec.patterns)} ignore pattern(s) from {ignore_path}")
    else:
        logger.debug(f"No ignore patterns loaded from {ignore_path}")
    return spec


@log_function_call
def run_action(
    config: ActionConfig,
    store: Optional[ObjectStore] = None,
    observer: Optional[UploadObserver] = None,
) -> List[str]:
    """
    Upload the files selected by ``config``.

    Args:
        config: Step inputs
        store: Object store (Cloud Storage if None)
        observer: Upload observer (logs each object if None)

    Returns:
        Uploaded object names in file order; empty when nothing matched

    Raises:
        UploaderError: On invalid inputs, missing paths, or failed uploads
    """
    # Inputs that can be checked without touching the filesystem come first
    metadata = parse_headers(config.headers) if config.headers.strip() else None
    bucket, prefix = parse_bucket_and_prefix(config.destination)
    if not bucket:
        raise ConfigError(f'Invalid "destination" - missing bucket name: "{config.destination}"')

    options = UploadOptions(
        bucket=bucket,
        concurrency=config.concurrency,
        gzip=config.gzip,
        resumable=config.resumable,
        predefined_acl=config.predefined_acl,
        metadata=metadata,
        observer=observer if observer is not None else LoggingUploadObserver(),
    )

    with log_group("Computing files to upload"):
        expanded = expand_paths(config.path, config.glob, config.workspace)

        ignore = load_ignore_spec(config)
        workspace = os.path.abspath(config.workspace)
        base = to_posix_path(os.path.relpath(expanded.absolute_root, workspace))
        files = filter_ignored(expanded.files, ignore, base="" if base == "." else base)

    if not files:
        logger.warning(
            "There are no files to upload! Make sure the workflow uses "
            '"actions/checkout" before uploading files and that "path", '
            '"glob" and the ignore file select at least one file.'
        )
        return []

    # A single file is never nested under its own name
    include_parent = config.parent and expanded.root_is_dir

    uploads = compute_destinations(
        given_root=expanded.given_root,
        absolute_root=expanded.absolute_root,
        files=files,
        prefix=prefix,
        include_parent=include_parent,
    )

    with log_group(f"Uploading {len(uploads)} file(s) to gs://{bucket}"):
        return upload_files(
            uploads,
            options,
            store if store is not None else GCSObjectStore(
                project_id=config.project_id, universe=config.universe
            ),
        )
