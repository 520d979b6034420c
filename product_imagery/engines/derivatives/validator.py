"""
Upload Validation

Cheap gatekeeper run on every upload before any pixel work. Only the
image header is decoded. Failures are returned as values so callers can
show the message to the user directly.
"""

from typing import Iterable, Optional

from PIL import Image

from product_imagery.core.config import settings
from product_imagery.core.logging import get_logger
from product_imagery.core.metrics import record_validation
from product_imagery.engines.derivatives.schemas import SourceImage, ValidationResult

logger = get_logger(__name__)

BYTES_PER_MB = 1024 * 1024


class ImageValidator:
    """Checks byte size, decodability, dimension bounds and format."""

    def __init__(
        self,
        max_size_mb: Optional[float] = None,
        min_dimension: Optional[int] = None,
        max_dimension: Optional[int] = None,
        allowed_formats: Optional[Iterable[str]] = None
    ):
        self.max_size_mb = max_size_mb if max_size_mb is not None else settings.MAX_UPLOAD_SIZE_MB
        self.min_dimension = min_dimension if min_dimension is not None else settings.MIN_DIMENSION
        self.max_dimension = max_dimension if max_dimension is not None else settings.MAX_DIMENSION
        self.allowed_formats = frozenset(
            fmt.lower() for fmt in (allowed_formats or settings.ALLOWED_FORMATS)
        )

    def validate(self, buffer: bytes, max_size_mb: Optional[float] = None) -> ValidationResult:
        """
        Validate an uploaded image.

        Args:
            buffer: Raw upload bytes
            max_size_mb: Per-call size limit, overrides the instance default

        Returns:
            ValidationResult; never raises.
        """
        limit_mb = max_size_mb if max_size_mb is not None else self.max_size_mb
        result = self._check(buffer or b"", limit_mb)

        if result.valid:
            record_validation("pass")
        else:
            record_validation("fail", result.reason or "unknown")
            logger.info(
                "image_validation_failed",
                reason=result.reason,
                error=result.error,
                byte_length=len(buffer or b"")
            )

        return result

    def _check(self, buffer: bytes, limit_mb: float) -> ValidationResult:
        if len(buffer) > limit_mb * BYTES_PER_MB:
            actual_mb = len(buffer) / BYTES_PER_MB
            return ValidationResult(
                valid=False,
                reason="file_too_large",
                error=(
                    f"File size ({actual_mb:.1f}MB) exceeds the maximum allowed "
                    f"size of {limit_mb:g}MB"
                ),
            )

        try:
            source = SourceImage.from_bytes(buffer)
        except Image.DecompressionBombError as e:
            # Pillow refuses to open past its pixel limit; the header was readable
            logger.debug("image_pixel_limit_exceeded", error=str(e))
            return ValidationResult(
                valid=False,
                reason="image_too_large",
                error=(
                    f"Image is too large. Maximum size is {self.max_dimension}px "
                    f"on the longest side"
                ),
            )
        except Exception as e:
            logger.debug("image_metadata_unreadable", error=str(e))
            return ValidationResult(
                valid=False,
                reason="unreadable_image",
                error="Unable to read image dimensions. The file may be corrupt or not an image",
            )

        width, height = source.width, source.height

        if min(width, height) < self.min_dimension:
            return ValidationResult(
                valid=False,
                reason="image_too_small",
                error=(
                    f"Image is too small ({width}x{height}px). Minimum size is "
                    f"{self.min_dimension}px on the shortest side"
                ),
                width=width,
                height=height,
                format=source.format,
            )

        if max(width, height) > self.max_dimension:
            return ValidationResult(
                valid=False,
                reason="image_too_large",
                error=(
                    f"Image is too large ({width}x{height}px). Maximum size is "
                    f"{self.max_dimension}px on the longest side"
                ),
                width=width,
                height=height,
                format=source.format,
            )

        if source.format not in self.allowed_formats:
            return ValidationResult(
                valid=False,
                reason="unsupported_format",
                error=(
                    f"Unsupported image format '{source.format}'. Allowed formats: "
                    f"{', '.join(sorted(self.allowed_formats))}"
                ),
                width=width,
                height=height,
                format=source.format,
            )

        return ValidationResult(valid=True, width=width, height=height, format=source.format)


def validate_image(buffer: bytes, max_size_mb: Optional[float] = None) -> ValidationResult:
    """Validate with the configured defaults."""
    return ImageValidator().validate(buffer, max_size_mb)
