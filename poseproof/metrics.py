# poseproof/metrics.py
"""
Prometheus metrics and /metrics endpoint for the FastAPI app.
"""

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

router = APIRouter()

# Export requests by aspect format and mode (sync / job / gif)
EXPORT_REQUESTS = Counter(
    "poseproof_export_requests_total",
    "Total number of export requests",
    ["format", "mode"],
)

# Interactive alignment requests by anchor
ALIGNMENT_REQUESTS = Counter(
    "poseproof_alignment_requests_total",
    "Total number of /api/v1/alignment requests",
    ["anchor"],
)

# Layouts that had to fall back to the shoulder line
SHOULDER_FALLBACKS = Counter(
    "poseproof_shoulder_alignment_total",
    "Number of export layouts that used shoulder alignment",
)

# Export jobs not yet finished
JOBS_IN_FLIGHT = Gauge(
    "poseproof_export_jobs_in_flight",
    "Number of export jobs currently not finished",
)

# Time spent rendering one export (sync and job)
EXPORT_PROCESSING_SECONDS = Histogram(
    "poseproof_export_processing_seconds",
    "Time spent producing an export in seconds",
)

# Jobs by final status
JOBS_COMPLETED = Counter(
    "poseproof_export_jobs_completed_total",
    "Total number of completed export jobs by status",
    ["status"],  # done, error
)


def render_metrics(registry: CollectorRegistry = REGISTRY) -> bytes:
    """Prometheus text exposition of the export, alignment and job metrics."""
    return generate_latest(registry)


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)
