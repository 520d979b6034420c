import io
from enum import Enum
from typing import Optional, Dict, Any

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

from product_imagery.core.config import settings


# Pillow reports phone-camera multi-picture JPEGs as MPO
FORMAT_ALIASES = {"mpo": "jpeg"}


def normalize_format(pil_format: Optional[str]) -> Optional[str]:
    """Lower-case a Pillow format name and fold container aliases."""
    if not pil_format:
        return None
    fmt = pil_format.lower()
    return FORMAT_ALIASES.get(fmt, fmt)


def count_channels(image: Image.Image) -> int:
    """Channel count as a codec would report it.

    Palette images expand to RGB, or RGBA when a transparency entry exists.
    """
    if image.mode == "P":
        return 4 if "transparency" in image.info else 3
    return len(image.getbands())


def has_alpha(image: Image.Image) -> bool:
    """True for images carrying an alpha band or a transparency entry.

    CMYK has four channels but is opaque.
    """
    if any(band in ("A", "a") for band in image.getbands()):
        return True
    return image.mode == "P" and "transparency" in image.info


class ProfileKey(str, Enum):
    """Named optimization profiles."""
    DEFAULT = "DEFAULT"
    BUSINESS_CARD = "BUSINESS_CARD"
    BANNER = "BANNER"
    FLYER = "FLYER"
    PREMIUM = "PREMIUM"


class ProcessingProfile(BaseModel):
    """Quality and size defaults tuned for a product category."""
    model_config = ConfigDict(frozen=True)

    quality: int = Field(..., ge=1, le=100)
    thumbnail_quality: int = Field(..., ge=1, le=100)
    max_dimension: int = Field(..., ge=1)


class SourceImage(BaseModel):
    """Uploaded bytes plus metadata decoded without reading pixel data."""
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    width: int
    height: int
    format: Optional[str] = None
    mode: str = ""
    channels: int = 0

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SourceImage":
        """Decode header metadata only.

        Raises whatever Pillow raises for unreadable input, or ValueError
        when the header carries no usable dimensions.
        """
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if not width or not height:
                raise ValueError("Image dimensions could not be determined")
            return cls(
                data=data,
                width=width,
                height=height,
                format=normalize_format(img.format),
                mode=img.mode,
                channels=count_channels(img),
            )


class ValidationResult(BaseModel):
    """Outcome of upload validation. A failed result is a value, not an error."""
    model_config = ConfigDict(frozen=True)

    valid: bool
    error: Optional[str] = None
    reason: Optional[str] = Field(None, description="Machine-readable failure code")
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class ContentAnalysis(BaseModel):
    """Pixel statistics used to adapt compression quality."""
    model_config = ConfigDict(frozen=True)

    has_transparency: bool = False
    average_contrast: float = Field(0.5, ge=0.0, le=1.0)
    is_high_contrast: bool = False
    text_likelihood: float = Field(0.5, ge=0.0)
    recommended_quality: int = Field(75, ge=1, le=100)
    dominant_colors: int = 100
    degraded: bool = Field(False, description="True when safe defaults were returned")

    @classmethod
    def safe_default(cls) -> "ContentAnalysis":
        return cls(degraded=True)


class ProcessingOptions(BaseModel):
    """Per-call overrides merged onto a profile.

    `quality` and `max_dimension` default to the resolved profile's values.
    The camelCase names used by upload clients are accepted as aliases.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    quality: Optional[int] = Field(None, ge=1, le=100)
    thumbnail_size: int = Field(
        default_factory=lambda: settings.THUMBNAIL_SIZE, ge=1, alias="thumbnailSize"
    )
    medium_size: int = Field(
        default_factory=lambda: settings.MEDIUM_SIZE, ge=1, alias="mediumSize"
    )
    large_size: int = Field(
        default_factory=lambda: settings.LARGE_SIZE, ge=1, alias="largeSize"
    )
    generate_webp: bool = Field(True, alias="generateWebP")
    generate_avif: bool = Field(False, alias="generateAVIF")
    generate_blur_placeholder: bool = Field(True, alias="generateBlurPlaceholder")
    product_profile: str = Field(ProfileKey.DEFAULT.value, alias="productProfile")
    enable_content_analysis: bool = Field(False, alias="enableContentAnalysis")
    max_dimension: Optional[int] = Field(None, ge=1, alias="maxDimension")


class ImageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    format: Optional[str]
    size: int
    original_size: int
    compression_ratio: float
    profile_used: str


class ProcessedImageSet(BaseModel):
    """Full derivative set for one upload. Disabled variants are empty bytes."""
    model_config = ConfigDict(frozen=True)

    optimized: bytes = Field(repr=False)
    large: bytes = Field(repr=False)
    medium: bytes = Field(repr=False)
    thumbnail: bytes = Field(repr=False)
    webp: bytes = Field(b"", repr=False)
    avif: bytes = Field(b"", repr=False)
    blur_data_url: str = Field("", repr=False)
    metadata: ImageMetadata

    def variant_sizes(self) -> Dict[str, int]:
        """Byte length of every buffer, keyed by variant name."""
        return {
            "optimized": len(self.optimized),
            "large": len(self.large),
            "medium": len(self.medium),
            "thumbnail": len(self.thumbnail),
            "webp": len(self.webp),
            "avif": len(self.avif),
        }

    def to_response_dict(self) -> Dict[str, Any]:
        """Convert to API response format (buffers summarized by size)."""
        return {
            "metadata": self.metadata.model_dump(),
            "sizes": self.variant_sizes(),
            "blur_data_url": self.blur_data_url or None,
        }
