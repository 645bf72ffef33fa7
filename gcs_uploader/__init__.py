"""
GCS Uploader

Uploads files and folders from a GitHub Actions workspace to a Google Cloud
Storage bucket.

This package provides modular components for each stage of an upload:
- paths: path/glob expansion, .gcloudignore filtering, object key computation
- uploader: header parsing, bounded-concurrency upload orchestration, GCS store
- utils: logging, configuration, concurrency, retry and metrics helpers
- action: the end-to-end step wiring everything together
"""

__version__ = "0.1.0"

# Package-level imports
from gcs_uploader.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
