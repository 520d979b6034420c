"""
FastAPI Dependencies

Provides dependency injection for:
- ImagePipeline (process-wide singleton, owns the worker pool)
- ImageValidator (stateless, per request)
"""

from typing import Optional

from product_imagery.engines.derivatives.validator import ImageValidator
from product_imagery.pipeline.orchestrator import ImagePipeline

_pipeline: Optional[ImagePipeline] = None


def get_pipeline() -> ImagePipeline:
    """Get the shared pipeline, creating it on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = ImagePipeline()
    return _pipeline


def shutdown_pipeline():
    """Release the worker pool. Called from the app lifespan."""
    global _pipeline
    if _pipeline is not None:
        _pipeline.close()
        _pipeline = None


def get_validator() -> ImageValidator:
    return ImageValidator()
