"""
Prometheus metrics for upload runs.

Provides instrumentation for object uploads with standardized Prometheus
metrics. An Actions step is short-lived, so metrics live in a dedicated
registry that is written to a textfile at the end of a run (for the
node-exporter textfile collector or an artifact upload) instead of being
scraped.

Metrics Provided:
    - upload_requests_total: Counter for object uploads by status
    - upload_bytes_total: Counter for uploaded bytes
    - upload_duration_seconds: Histogram for per-object upload latency
    - upload_run_duration_seconds: Histogram for whole-run latency
    - gcs_api_errors_total: Counter for GCS API errors
    - active_uploads: Gauge for uploads currently in flight

Usage:
    from gcs_uploader.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_upload():
        store.store_object(...)
    metrics.record_upload_success(bytes_uploaded=1024)
"""

import os
from contextlib import contextmanager, nullcontext
from typing import ContextManager, Iterator, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    write_to_textfile,
)

from gcs_uploader import __version__
from gcs_uploader.utils.logging import get_logger

# Module-level logger
logger = get_logger(__name__)


class PrometheusMetrics:
    """
    Centralized Prometheus metrics for upload runs.

    Example:
        >>> metrics = PrometheusMetrics()
        >>> metrics.upload_requests.labels(status="success").inc()
        >>> metrics.upload_bytes.inc(1024000)
    """

    def __init__(
        self, enabled: bool = True, registry: Optional[CollectorRegistry] = None
    ) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Prometheus registry (a fresh one if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        # Counter: Object uploads by status
        self.upload_requests = Counter(
            name="upload_requests_total",
            documentation="Total number of object uploads",
            labelnames=["status"],  # success, failure
            registry=self.registry,
        )

        # Counter: Total bytes uploaded
        self.upload_bytes = Counter(
            name="upload_bytes_total",
            documentation="Total bytes uploaded to GCS",
            registry=self.registry,
        )

        # Histogram: Per-object upload duration
        self.upload_duration = Histogram(
            name="upload_duration_seconds",
            documentation="Time spent uploading one object",
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=self.registry,
        )

        # Histogram: Whole-run duration
        self.run_duration = Histogram(
            name="upload_run_duration_seconds",
            documentation="Time spent uploading a whole file set",
            buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 600.0, 1800.0],
            registry=self.registry,
        )

        # Counter: GCS API errors
        self.gcs_api_errors = Counter(
            name="gcs_api_errors_total",
            documentation="Total GCS API errors",
            labelnames=["operation", "error_type"],
            registry=self.registry,
        )

        # Gauge: Uploads in flight
        self.active_uploads = Gauge(
            name="active_uploads",
            documentation="Number of object uploads currently in flight",
            registry=self.registry,
        )

        self.app_info = Info(
            name="application",
            documentation="Application metadata",
            registry=self.registry,
        )
        self.app_info.info({"version": __version__, "name": "gcs-uploader"})

    def track_upload(self) -> ContextManager:
        """
        Context manager timing one object upload and counting it as in flight.

        Example:
            >>> with metrics.track_upload():
            ...     blob.upload_from_filename(path)
        """
        if not self.enabled:
            return nullcontext()
        return self._track_upload()

    @contextmanager
    def _track_upload(self) -> Iterator[None]:
        self.active_uploads.inc()
        try:
            with self.upload_duration.time():
                yield
        finally:
            self.active_uploads.dec()

    def track_run(self) -> ContextManager:
        """Context manager timing a whole upload run."""
        if not self.enabled:
            return nullcontext()
        return self.run_duration.time()

    def record_upload_success(self, bytes_uploaded: int) -> None:
        """
        Record a successful object upload.

        Args:
            bytes_uploaded: Number of bytes sent
        """
        if not self.enabled:
            return

        self.upload_requests.labels(status="success").inc()
        if bytes_uploaded > 0:
            self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self) -> None:
        """Record a failed object upload."""
        if not self.enabled:
            return

        self.upload_requests.labels(status="failure").inc()

    def record_gcs_error(self, operation: str, error_type: str) -> None:
        """
        Record a GCS API error.

        Args:
            operation: GCS operation (upload)
            error_type: Exception class name
        """
        if not self.enabled:
            return

        self.gcs_api_errors.labels(operation=operation, error_type=error_type).inc()

    def write_textfile(self, path: str) -> None:
        """Write the registry in text exposition format to *path*."""
        if not self.enabled:
            return
        write_to_textfile(path, self.registry)
        logger.debug(f"Wrote metrics to {path}")


# Global metrics instance (singleton)
_metrics_instance: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance (singleton).

    ``METRICS_ENABLED=false`` turns every collector into a no-op.
    """
    global _metrics_instance

    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = PrometheusMetrics(enabled=enabled)

    return _metrics_instance


def reset_metrics() -> None:
    """Drop the global instance so the next ``get_metrics`` starts fresh."""
    global _metrics_instance
    _metrics_instance = None
