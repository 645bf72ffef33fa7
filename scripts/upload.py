#!/usr/bin/env python3
"""
Upload files or folders to Google Cloud Storage.

Entry point of the GitHub Action. Inputs come from the ``INPUT_*``
environment variables set by the runner; command-line flags override them,
which makes local runs convenient.

Usage:
    python scripts/upload.py
    python scripts/upload.py --path ./dist --destination my-bucket/site
    python scripts/upload.py --path ./build --glob '**/*.js' --no-parent
    python scripts/upload.py --path ./logs --destination my-bucket --headers 'cache-control: no-cache'
"""

import argparse
import os
import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_uploader.action import run_action, set_output  # noqa: E402
from gcs_uploader.errors import UploaderError  # noqa: E402
from gcs_uploader.utils.config import ActionConfig  # noqa: E402
from gcs_uploader.utils.logging import get_logger, setup_logging  # noqa: E402
from gcs_uploader.utils.metrics import get_metrics  # noqa: E402

logger = get_logger(__name__)

# CLI flag destination -> action input name
_INPUT_NAMES = {
    "path": "path",
    "destination": "destination",
    "glob": "glob",
    "gzip": "gzip",
    "resumable": "resumable",
    "parent": "parent",
    "concurrency": "concurrency",
    "predefined_acl": "predefinedAcl",
    "headers": "headers",
    "process_gcloudignore": "process_gcloudignore",
    "gcloudignore_path": "gcloudignore_path",
    "project_id": "project_id",
    "universe": "universe",
}


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Upload files or folders to a Google Cloud Storage bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a folder, keeping its name as the first key segment
  %(prog)s --path ./dist --destination my-bucket

  # Upload under a prefix without the folder name
  %(prog)s --path ./dist --destination my-bucket/site/v2 --no-parent

  # Upload only matching files
  %(prog)s --path ./build --destination my-bucket --glob '**/*.js'

  # Several roots, one per line
  %(prog)s --path $'a.json\\nb.json' --destination my-bucket
        """,
    )

    parser.add_argument("--path", help="File or folder to upload (newline-separated for several)")
    parser.add_argument("--destination", help="bucket-name or bucket-name/prefix")
    parser.add_argument("--glob", help="Glob pattern selecting files under a folder")
    parser.add_argument(
        "--gzip",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Upload with gzip content-encoding (default: true)",
    )
    parser.add_argument(
        "--resumable",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use resumable uploads (default: true)",
    )
    parser.add_argument(
        "--parent",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include the folder name in object keys (default: true)",
    )
    parser.add_argument("--concurrency", type=int, help="Simultaneous uploads (default: 100)")
    parser.add_argument(
        "--predefined-acl",
        dest="predefined_acl",
        help="Predefined ACL, e.g. projectPrivate or publicRead",
    )
    parser.add_argument("--headers", help="Object metadata, one 'key: value' per line")
    parser.add_argument(
        "--process-gcloudignore",
        dest="process_gcloudignore",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip files matched by the ignore file (default: true)",
    )
    parser.add_argument(
        "--gcloudignore-path",
        dest="gcloudignore_path",
        help="Ignore file relative to the workspace (default: .gcloudignore)",
    )
    parser.add_argument("--project-id", dest="project_id", help="Google Cloud project ID")
    parser.add_argument("--universe", help="Google Cloud universe domain")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    return parser.parse_args(argv)


def apply_overrides(args) -> None:
    """Expose command-line flags as action inputs."""
    for attr, input_name in _INPUT_NAMES.items():
        value = getattr(args, attr)
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        os.environ[f"INPUT_{input_name.upper()}"] = str(value)


def main(argv=None):
    """Main entry point for the upload step."""
    args = parse_args(argv)

    if args.verbose:
        setup_logging(level="DEBUG")

    apply_overrides(args)
    metrics = get_metrics()

    try:
        config = ActionConfig.from_env()
        uploaded = run_action(config)
        set_output("uploaded", ",".join(uploaded), config.output_path)
        return 0

    except UploaderError as e:
        logger.error(f"gcs-uploader failed with: {e}")
        return 1

    except KeyboardInterrupt:
        logger.warning("Upload cancelled by user")
        return 130

    except Exception as e:
        logger.error(f"gcs-uploader failed with: {e}")
        return 1

    finally:
        textfile = os.getenv("METRICS_TEXTFILE")
        if textfile:
            metrics.write_textfile(textfile)


if __name__ == "__main__":
    sys.exit(main())
