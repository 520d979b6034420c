"""
Derivative Generation

Produces the full derivative set for one upload from a single resized
base image. Every derivative is derived from a fresh copy of that base so
no transform can leak into another output.

Outputs:
- optimized: capped master, JPEG at the final quality
- large / medium: inside-fit JPEGs
- thumbnail: exact square, attention-weighted cover crop
- webp: fast WebP encode (optional)
- avif: empty unless AVIF encoding is switched on
- blur_data_url: 8x8 blurred JPEG as a data URI (optional)
"""

import io
import base64
import time
from typing import Optional, Tuple

from PIL import Image, ImageFilter, ImageOps

from product_imagery.core.config import settings
from product_imagery.core.exceptions import ProcessingError
from product_imagery.core.logging import get_logger
from product_imagery.core.metrics import record_derivative_sizes, track_stage_latency
from product_imagery.engines.derivatives.analyzer import ContentAnalyzer
from product_imagery.engines.derivatives.dimensions import fit
from product_imagery.engines.derivatives.profiles import PROFILE_CATALOG, to_profile_key
from product_imagery.engines.derivatives.saliency import attention_centering
from product_imagery.engines.derivatives.schemas import (
    ImageMetadata,
    ProcessedImageSet,
    ProcessingOptions,
    SourceImage,
)

logger = get_logger(__name__)

MIN_QUALITY = 60
MEDIUM_QUALITY_STEP = 5
WEBP_QUALITY_STEP = 10

BLUR_SIZE = (8, 8)
BLUR_RADIUS = 1
BLUR_QUALITY = 20
BLUR_DATA_URL_PREFIX = "data:image/jpeg;base64,"

WHITE = (255, 255, 255)
RESAMPLE = Image.Resampling.LANCZOS


class DerivativeGenerator:
    """Builds a ProcessedImageSet from validated upload bytes."""

    def __init__(
        self,
        analyzer: Optional[ContentAnalyzer] = None,
        avif_enabled: Optional[bool] = None
    ):
        self.analyzer = analyzer or ContentAnalyzer()
        self.avif_enabled = settings.AVIF_ENCODING_ENABLED if avif_enabled is None else avif_enabled

    def generate(
        self,
        buffer: bytes,
        filename: str = "",
        options: Optional[ProcessingOptions] = None
    ) -> ProcessedImageSet:
        """
        Generate every derivative for an image.

        Args:
            buffer: Raw upload bytes (already validated)
            filename: Original filename, used for diagnostics only
            options: Per-call processing options

        Returns:
            ProcessedImageSet with all six buffers defined

        Raises:
            ProcessingError: when the codec cannot decode or encode the image
        """
        options = options or ProcessingOptions()
        start_time = time.perf_counter()

        try:
            source = SourceImage.from_bytes(buffer)
        except Exception as e:
            logger.error("derivatives_metadata_unreadable", filename=filename, error=str(e))
            raise ProcessingError(f"Failed to process image: {e}", cause=e) from e

        profile_key = to_profile_key(options.product_profile)
        profile = PROFILE_CATALOG[profile_key]
        max_dimension = options.max_dimension or profile.max_dimension
        final_quality = options.quality or profile.quality

        if options.enable_content_analysis:
            analysis = self.analyzer.analyze(buffer)
            final_quality = min(final_quality, analysis.recommended_quality)

        try:
            with track_stage_latency("derivatives"):
                base = self._build_base(source, max_dimension)
                optimal_width, optimal_height = base.size

                optimized = self._encode_jpeg(base.copy(), final_quality)
                large = self._encode_jpeg(
                    self._resize_inside(base.copy(), options.large_size),
                    final_quality
                )
                medium = self._encode_jpeg(
                    self._resize_inside(base.copy(), options.medium_size),
                    max(final_quality - MEDIUM_QUALITY_STEP, MIN_QUALITY)
                )
                thumbnail = self._encode_jpeg(
                    self._cover_crop(base.copy(), options.thumbnail_size),
                    profile.thumbnail_quality
                )
                webp = b""
                if options.generate_webp:
                    webp = self._encode_webp(
                        base.copy(),
                        max(final_quality - WEBP_QUALITY_STEP, MIN_QUALITY)
                    )
                avif = b""
                if options.generate_avif and self.avif_enabled:
                    avif = self._encode_avif(base.copy(), final_quality)
                blur_data_url = ""
                if options.generate_blur_placeholder:
                    blur_data_url = self._blur_placeholder(base.copy())
        except Exception as e:
            logger.error(
                "derivatives_failed",
                filename=filename,
                error=str(e),
                error_type=type(e).__name__
            )
            raise ProcessingError(f"Failed to process image: {e}", cause=e) from e

        metadata = ImageMetadata(
            width=optimal_width,
            height=optimal_height,
            format=source.format,
            size=len(optimized),
            original_size=source.byte_length,
            compression_ratio=len(optimized) / source.byte_length,
            profile_used=profile_key.value,
        )
        image_set = ProcessedImageSet(
            optimized=optimized,
            large=large,
            medium=medium,
            thumbnail=thumbnail,
            webp=webp,
            avif=avif,
            blur_data_url=blur_data_url,
            metadata=metadata,
        )

        record_derivative_sizes(image_set.variant_sizes())
        logger.info(
            "derivatives_completed",
            filename=filename,
            profile=profile_key.value,
            quality=final_quality,
            dimensions=(optimal_width, optimal_height),
            original_size=source.byte_length,
            optimized_size=len(optimized),
            compression_ratio=round(metadata.compression_ratio, 4),
            duration_ms=int((time.perf_counter() - start_time) * 1000)
        )
        return image_set

    # =========================================================================
    # Base image
    # =========================================================================

    def _build_base(self, source: SourceImage, max_dimension: int) -> Image.Image:
        """Decode, orient, flatten and cap the image. Shared by all derivatives."""
        with Image.open(io.BytesIO(source.data)) as img:
            oriented = ImageOps.exif_transpose(img)
            base = self._flatten(oriented)

        target = fit(base.width, base.height, max_dimension, max_dimension)
        if target != base.size:
            base = base.resize(target, RESAMPLE)
        return base

    @staticmethod
    def _flatten(img: Image.Image) -> Image.Image:
        """Convert to RGB, compositing any alpha onto white."""
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, WHITE)
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        if img.mode != "RGB":
            return img.convert("RGB")
        return img.copy()

    # =========================================================================
    # Transforms
    # =========================================================================

    @staticmethod
    def _resize_inside(img: Image.Image, box: int) -> Image.Image:
        target = fit(img.width, img.height, box, box)
        if target == img.size:
            return img
        return img.resize(target, RESAMPLE)

    @staticmethod
    def _cover_crop(img: Image.Image, size: int) -> Image.Image:
        target: Tuple[int, int] = (size, size)
        centering = attention_centering(img, target)
        return ImageOps.fit(img, target, method=RESAMPLE, centering=centering)

    # =========================================================================
    # Encoders
    # =========================================================================

    @staticmethod
    def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
        output = io.BytesIO()
        img.save(output, format="JPEG", quality=quality, optimize=True, progressive=True)
        return output.getvalue()

    @staticmethod
    def _encode_webp(img: Image.Image, quality: int) -> bytes:
        output = io.BytesIO()
        # method=0 is the fastest encoder setting
        img.save(output, format="WEBP", quality=quality, method=0)
        return output.getvalue()

    @staticmethod
    def _encode_avif(img: Image.Image, quality: int) -> bytes:
        """Encode AVIF, or return empty bytes when this Pillow build cannot."""
        output = io.BytesIO()
        try:
            img.save(output, format="AVIF", quality=quality)
        except (KeyError, OSError, ValueError) as e:
            logger.warning("avif_encoding_unavailable", error=str(e))
            return b""
        return output.getvalue()

    @staticmethod
    def _blur_placeholder(img: Image.Image) -> str:
        tiny = ImageOps.fit(img, BLUR_SIZE, method=RESAMPLE)
        tiny = tiny.filter(ImageFilter.GaussianBlur(radius=BLUR_RADIUS))
        output = io.BytesIO()
        tiny.save(output, format="JPEG", quality=BLUR_QUALITY)
        return BLUR_DATA_URL_PREFIX + base64.b64encode(output.getvalue()).decode("ascii")
