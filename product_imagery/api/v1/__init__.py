"""
API v1 Router Module

All v1 endpoints are prefixed with /api/v1/

- /api/v1/images/validate - Upload validation
- /api/v1/images/process  - Derivative generation
- /api/v1/metrics         - Prometheus metrics
"""

from fastapi import APIRouter

from product_imagery.api.v1.images import router as images_router
from product_imagery.api.v1.metrics import router as metrics_router

api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(images_router, prefix="/images", tags=["images"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
