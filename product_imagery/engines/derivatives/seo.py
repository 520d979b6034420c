"""
SEO helpers for product images: alt text and schema.org structured data.
"""

import re
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from product_imagery.engines.derivatives.schemas import ImageMetadata

SCHEMA_CONTEXT = "https://schema.org"

# Camera and export noise that says nothing about the picture
_FILENAME_NOISE = re.compile(
    r"\b(img|dsc|dscn|pxl|image|photo|scan|copy|final|edited|untitled)\b",
    re.IGNORECASE
)
_SEPARATORS = re.compile(r"[_\-.+]+")
_DIGIT_RUNS = re.compile(r"\b\d+\b")
_WHITESPACE = re.compile(r"\s+")


def _humanize_filename(filename: str) -> str:
    stem = PurePath(filename or "").stem
    words = _SEPARATORS.sub(" ", stem)
    words = _FILENAME_NOISE.sub(" ", words)
    words = _DIGIT_RUNS.sub(" ", words)
    return _WHITESPACE.sub(" ", words).strip()


def generate_alt_text(
    filename: str,
    product_name: Optional[str] = None,
    category_name: Optional[str] = None,
    is_primary: bool = False,
    index: Optional[int] = None
) -> str:
    """
    Build descriptive alt text for a product image.

    Product name wins over the filename; the filename is only used,
    cleaned of camera prefixes and counters, when no name is given.

    Args:
        filename: Original upload filename
        product_name: Product display name
        category_name: Category display name
        is_primary: Whether this is the product's main image
        index: 1-based position in the gallery for secondary images

    Returns:
        Alt text string, never empty.
    """
    subject = (product_name or "").strip() or _humanize_filename(filename) or "Product"
    subject = subject[0].upper() + subject[1:]

    text = subject
    category = (category_name or "").strip()
    if category and category.lower() not in subject.lower():
        text = f"{text} - {category}"

    if is_primary:
        return f"{text} product image"
    if index is not None:
        return f"{text} product image {index}"
    return f"{text} image"


def generate_image_structured_data(
    image_url: str,
    product_name: str,
    metadata: Optional[ImageMetadata] = None,
    thumbnail_url: Optional[str] = None,
    alt_text: Optional[str] = None
) -> Dict[str, Any]:
    """schema.org ImageObject for a single processed image."""
    data: Dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "ImageObject",
        "contentUrl": image_url,
        "url": image_url,
        "name": product_name,
        "caption": alt_text or f"{product_name} product image",
    }
    if thumbnail_url:
        data["thumbnailUrl"] = thumbnail_url
    if metadata is not None:
        data["width"] = metadata.width
        data["height"] = metadata.height
        data["contentSize"] = metadata.size
        data["encodingFormat"] = "image/jpeg"
    return data


def generate_product_image_structured_data(
    images: List[Dict[str, Any]],
    product_name: str,
    product_url: str
) -> Dict[str, Any]:
    """
    schema.org Product with its gallery, primary image first.

    Each image dict may carry: url, large_url, thumbnail_url, width,
    height, alt, is_primary, sort_order.
    """
    ordered = sorted(
        images,
        key=lambda img: (not img.get("is_primary", False), img.get("sort_order", 0))
    )

    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Product",
        "name": product_name,
        "image": [
            {
                "@type": "ImageObject",
                "url": img.get("large_url") or img.get("url"),
                "thumbnail": img.get("thumbnail_url"),
                "width": img.get("width"),
                "height": img.get("height"),
                "caption": img.get("alt") or f"{product_name} product image",
            }
            for img in ordered
        ],
        "url": product_url,
    }
