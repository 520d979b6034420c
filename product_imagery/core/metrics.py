"""
Prometheus Metrics for Observability

Tracks pipeline latency, validation outcomes and derivative sizes.
Exposes /api/v1/metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Pipeline Latency - Per Stage
pipeline_latency_seconds = Histogram(
    "pipeline_latency_seconds",
    "Time spent in each pipeline stage",
    labelnames=["stage", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0]
)

# Validation outcomes
image_validations_total = Counter(
    "image_validations_total",
    "Total number of upload validations",
    labelnames=["status", "reason"]
)

# Pipeline outcomes
derivative_jobs_total = Counter(
    "derivative_jobs_total",
    "Total number of derivative pipeline runs",
    labelnames=["status"]  # completed, failed, timeout
)

# Active pipelines
active_pipelines_gauge = Gauge(
    "imagery_active_pipelines",
    "Number of images currently being processed"
)

# Output sizes per variant
derivative_bytes = Histogram(
    "derivative_bytes",
    "Encoded size of each derivative in bytes",
    labelnames=["variant"],
    buckets=[1_000, 5_000, 10_000, 25_000, 50_000, 100_000, 250_000, 500_000, 1_000_000]
)

# Analyzer fallbacks
content_analysis_degraded_total = Counter(
    "content_analysis_degraded_total",
    "Number of content analyses that fell back to safe defaults"
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0]
)

# Application Info
app_info = Info(
    "imagery_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_stage_latency(stage: str):
    """
    Context manager to track stage latency.

    Usage:
        with track_stage_latency("derivatives"):
            # do work
    """
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start
        pipeline_latency_seconds.labels(stage=stage, status=status).observe(duration)


def record_validation(status: str, reason: str = "none"):
    """Record an upload validation outcome."""
    image_validations_total.labels(status=status, reason=reason).inc()


def record_job_completion(status: str):
    """Record the outcome of one pipeline run."""
    derivative_jobs_total.labels(status=status).inc()


def record_derivative_sizes(sizes: dict):
    """Record encoded byte sizes, skipping variants that were not produced."""
    for variant, size in sizes.items():
        if size:
            derivative_bytes.labels(variant=variant).observe(size)


def record_analysis_degraded():
    """Record a content analysis fallback."""
    content_analysis_degraded_total.inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
