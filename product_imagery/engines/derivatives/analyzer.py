"""
Content Analysis

Lightweight pixel statistics used to adapt JPEG quality to the image:
transparency, brightness contrast over a pixel sample, and channel spread
as a cheap proxy for edges and text. Analysis never blocks processing:
any decode or statistics failure yields the safe-default record.
"""

import io
import math
from typing import Optional

import numpy as np
from PIL import Image, ImageStat

from product_imagery.core.config import settings
from product_imagery.core.logging import get_logger
from product_imagery.core.metrics import record_analysis_degraded, track_stage_latency
from product_imagery.engines.derivatives.schemas import ContentAnalysis, count_channels, has_alpha

logger = get_logger(__name__)

MID_GREY = 128.0
TEXT_LIKELIHOOD_THRESHOLD = 0.7
LOW_CONTRAST_THRESHOLD = 0.3

QUALITY_DETAILED = 70
QUALITY_FLAT = 80
QUALITY_BALANCED = 75


class ContentAnalyzer:
    """Samples decoded pixels and recommends a compression quality."""

    def __init__(
        self,
        sample_pixels: Optional[int] = None,
        high_contrast_threshold: Optional[float] = None
    ):
        self.sample_pixels = sample_pixels or settings.ANALYSIS_SAMPLE_PIXELS
        self.high_contrast_threshold = (
            high_contrast_threshold
            if high_contrast_threshold is not None
            else settings.HIGH_CONTRAST_THRESHOLD
        )

    def analyze(self, buffer: bytes) -> ContentAnalysis:
        """Analyze an encoded image; returns safe defaults on any failure."""
        try:
            with track_stage_latency("content_analysis"):
                return self._analyze(buffer)
        except Exception as e:
            record_analysis_degraded()
            logger.warning(
                "content_analysis_degraded",
                error=str(e),
                error_type=type(e).__name__
            )
            return ContentAnalysis.safe_default()

    def _analyze(self, buffer: bytes) -> ContentAnalysis:
        with Image.open(io.BytesIO(buffer)) as img:
            channels = count_channels(img)
            has_transparency = has_alpha(img)
            rgb = img.convert("RGB")

        average_contrast = self._sample_contrast(rgb)
        is_high_contrast = average_contrast > self.high_contrast_threshold

        stddev = ImageStat.Stat(rgb).stddev
        text_likelihood = stddev[0] / MID_GREY

        if is_high_contrast or text_likelihood > TEXT_LIKELIHOOD_THRESHOLD:
            recommended_quality = QUALITY_DETAILED
        elif average_contrast < LOW_CONTRAST_THRESHOLD:
            recommended_quality = QUALITY_FLAT
        else:
            recommended_quality = QUALITY_BALANCED

        analysis = ContentAnalysis(
            has_transparency=has_transparency,
            average_contrast=average_contrast,
            is_high_contrast=is_high_contrast,
            text_likelihood=text_likelihood,
            recommended_quality=recommended_quality,
            dominant_colors=min(channels * 50, 200),
        )

        logger.debug(
            "content_analysis_completed",
            average_contrast=round(average_contrast, 3),
            text_likelihood=round(text_likelihood, 3),
            recommended_quality=recommended_quality
        )
        return analysis

    def _sample_contrast(self, rgb: Image.Image) -> float:
        """Mean distance from mid-grey over the first pixels in row-major order."""
        width, height = rgb.size
        rows = min(height, math.ceil(self.sample_pixels / width))
        strip = np.asarray(rgb.crop((0, 0, width, rows)), dtype=np.float64)
        sample = strip.reshape(-1, 3)[: self.sample_pixels]
        if sample.size == 0:
            raise ValueError("Image has no pixels to sample")

        brightness = sample.mean(axis=1)
        contrast = float(np.abs(brightness - MID_GREY).mean() / MID_GREY)
        return min(max(contrast, 0.0), 1.0)


def analyze_content(buffer: bytes) -> ContentAnalysis:
    """Analyze with the configured defaults."""
    return ContentAnalyzer().analyze(buffer)
