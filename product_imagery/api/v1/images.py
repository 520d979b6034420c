"""
Image Endpoints - Derivative Pipeline

POST /api/v1/images/validate - Check an upload without processing it
POST /api/v1/images/process  - Validate and generate all derivatives

Persisting the returned buffers is the caller's concern.
"""

import base64
import json
import uuid
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field, ValidationError

from product_imagery.api.dependencies import get_pipeline, get_validator
from product_imagery.core.exceptions import ImageValidationError
from product_imagery.core.logging import LogContext, get_logger
from product_imagery.engines.derivatives.profiles import determine_profile
from product_imagery.engines.derivatives.schemas import ProcessingOptions
from product_imagery.engines.derivatives.seo import generate_alt_text
from product_imagery.engines.derivatives.validator import ImageValidator
from product_imagery.pipeline.orchestrator import ImagePipeline

logger = get_logger(__name__)
router = APIRouter()


# =============================================================================
# Response Schemas
# =============================================================================

class ValidateResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
    reason: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class ProcessResponse(BaseModel):
    image_id: str
    filename: str
    alt_text: str
    metadata: Dict[str, Any]
    sizes: Dict[str, int] = Field(..., description="Byte length of each derivative")
    blur_data_url: Optional[str] = None
    derivatives: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Base64-encoded buffers; null for variants that were not produced"
    )


# =============================================================================
# Helpers
# =============================================================================

def _parse_options(
    raw_options: Optional[str],
    product_name: Optional[str],
    category_name: Optional[str]
) -> ProcessingOptions:
    """Build options from the form field; infer the profile from names if none given."""
    try:
        values: Dict[str, Any] = json.loads(raw_options) if raw_options else {}
    except json.JSONDecodeError as e:
        raise ImageValidationError(f"Invalid options JSON: {e.msg}", reason="invalid_options")

    if not isinstance(values, dict):
        raise ImageValidationError("Options must be a JSON object", reason="invalid_options")

    if "product_profile" not in values and "productProfile" not in values:
        values["product_profile"] = determine_profile(product_name, category_name).value

    try:
        return ProcessingOptions.model_validate(values)
    except ValidationError as e:
        raise ImageValidationError(
            "Invalid processing options",
            reason="invalid_options",
            details={"errors": e.errors(include_url=False, include_context=False)}
        )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/validate", response_model=ValidateResponse)
async def validate_upload(
    file: UploadFile = File(...),
    validator: ImageValidator = Depends(get_validator)
):
    """Validate an upload: size, decodability, dimensions and format."""
    data = await file.read()
    result = validator.validate(data)
    return ValidateResponse(**result.model_dump())


@router.post("/process", response_model=ProcessResponse)
async def process_upload(
    file: UploadFile = File(...),
    product_name: Optional[str] = Form(None),
    category_name: Optional[str] = Form(None),
    options: Optional[str] = Form(None),
    include_buffers: bool = Form(True),
    validator: ImageValidator = Depends(get_validator),
    pipeline: ImagePipeline = Depends(get_pipeline)
):
    """
    Validate an upload and generate its derivative set.

    Flow:
    1. Validate (400 with the validator's message on failure)
    2. Resolve options, inferring the profile from product/category names
    3. Run the pipeline under its deadline (504 on timeout, 500 on codec failure)
    """
    image_id = uuid.uuid4().hex
    filename = file.filename or "upload"
    data = await file.read()

    with LogContext(image_id=image_id, stage="validation"):
        logger.info("process_request_received", filename=filename, byte_length=len(data))

        validation = validator.validate(data)
        if not validation.valid:
            raise ImageValidationError(validation.error, reason=validation.reason, image_id=image_id)

        processing_options = _parse_options(options, product_name, category_name)

    image_set = await pipeline.process(data, filename, processing_options, image_id=image_id)

    derivatives: Dict[str, Optional[str]] = {}
    if include_buffers:
        for variant in ("optimized", "large", "medium", "thumbnail", "webp", "avif"):
            buffer = getattr(image_set, variant)
            derivatives[variant] = base64.b64encode(buffer).decode("ascii") if buffer else None

    summary = image_set.to_response_dict()
    return ProcessResponse(
        image_id=image_id,
        filename=filename,
        alt_text=generate_alt_text(filename, product_name, category_name, is_primary=True),
        metadata=summary["metadata"],
        sizes=summary["sizes"],
        blur_data_url=summary["blur_data_url"],
        derivatives=derivatives,
    )
