"""
Utility modules for the GCS uploader.

This package provides shared utilities used across all upload stages:
- logging: Structured logging with entry/exit decorators
- config: Action input loading and validation
- executor: Bounded-concurrency task runner
- retry: Backoff for transient failures
- metrics: Prometheus collectors
"""

from gcs_uploader.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
