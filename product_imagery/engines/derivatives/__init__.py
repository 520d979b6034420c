"""
Derivative Engine

Validation, content analysis, profile resolution and derivative
generation for uploaded product images.
"""

from product_imagery.engines.derivatives.analyzer import ContentAnalyzer, analyze_content
from product_imagery.engines.derivatives.dimensions import fit
from product_imagery.engines.derivatives.generator import DerivativeGenerator
from product_imagery.engines.derivatives.profiles import (
    PROFILE_CATALOG,
    determine_profile,
    resolve_profile,
)
from product_imagery.engines.derivatives.schemas import (
    ContentAnalysis,
    ImageMetadata,
    ProcessedImageSet,
    ProcessingOptions,
    ProcessingProfile,
    ProfileKey,
    SourceImage,
    ValidationResult,
)
from product_imagery.engines.derivatives.seo import (
    generate_alt_text,
    generate_image_structured_data,
    generate_product_image_structured_data,
)
from product_imagery.engines.derivatives.validator import ImageValidator, validate_image

__all__ = [
    "ContentAnalyzer",
    "analyze_content",
    "fit",
    "DerivativeGenerator",
    "PROFILE_CATALOG",
    "determine_profile",
    "resolve_profile",
    "ContentAnalysis",
    "ImageMetadata",
    "ProcessedImageSet",
    "ProcessingOptions",
    "ProcessingProfile",
    "ProfileKey",
    "SourceImage",
    "ValidationResult",
    "generate_alt_text",
    "generate_image_structured_data",
    "generate_product_image_structured_data",
    "ImageValidator",
    "validate_image",
]
