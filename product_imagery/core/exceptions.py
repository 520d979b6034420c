"""
Global Exception Handling

Provides the error taxonomy of the derivative pipeline and structured
JSON error responses for the HTTP layer.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from product_imagery.core.logging import get_logger, image_id_var

logger = get_logger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Custom Exceptions
# =============================================================================

class ImageryBaseException(Exception):
    """Base exception for the imagery service."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        image_id: Optional[str] = None,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.image_id = image_id or image_id_var.get()
        self.stage = stage
        self.details = details or {}
        super().__init__(self.message)


class ImageValidationError(ImageryBaseException):
    """Raised at the HTTP boundary when an upload fails validation.

    The validator itself never raises; it returns a ValidationResult.
    """

    def __init__(self, message: str, reason: Optional[str] = None, **kwargs):
        super().__init__(message, code=400, stage="validation", **kwargs)
        self.details["reason"] = reason


class ProcessingError(ImageryBaseException):
    """Raised when derivative generation fails in the codec layer."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        kwargs.setdefault("stage", "derivatives")
        super().__init__(message, code=500, **kwargs)
        if cause is not None:
            self.details["cause"] = str(cause)
            self.details["cause_type"] = type(cause).__name__


class ProcessingTimeoutError(ImageryBaseException):
    """Raised when a single image exceeds the pipeline deadline."""

    def __init__(self, timeout_seconds: float, filename: Optional[str] = None, **kwargs):
        kwargs.setdefault("stage", "derivatives")
        super().__init__(
            f"Image processing exceeded {timeout_seconds:g}s deadline",
            code=504,
            **kwargs
        )
        self.timeout_seconds = timeout_seconds
        self.details["timeout_seconds"] = timeout_seconds
        if filename:
            self.details["filename"] = filename


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(ImageryBaseException)
    async def imagery_exception_handler(request: Request, exc: ImageryBaseException):
        image_id = exc.image_id or image_id_var.get()

        log = logger.warning if exc.code < 500 else logger.error
        log(
            "imagery_exception",
            error=exc.message,
            code=exc.code,
            error_stage=exc.stage,
            error_type=type(exc).__name__,
            details=exc.details
        )

        return JSONResponse(
            status_code=exc.code,
            content={
                "error": exc.message,
                "image_id": image_id,
                "code": exc.code,
                "stage": exc.stage,
                "details": exc.details,
                "timestamp": _utc_timestamp()
            }
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        image_id = image_id_var.get()

        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "image_id": image_id,
                "code": 500,
                "timestamp": _utc_timestamp()
            }
        )
