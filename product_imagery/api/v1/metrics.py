"""
Metrics Endpoint

GET /api/v1/metrics - Prometheus metrics endpoint
"""

from fastapi import APIRouter, Response

from product_imagery.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes:
    - pipeline_latency_seconds (per stage)
    - image_validations_total
    - derivative_jobs_total
    - derivative_bytes (per variant)
    - content_analysis_degraded_total
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
