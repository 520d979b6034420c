"""
Aspect-preserving target size calculation.
"""

from typing import Tuple


def fit(orig_width: int, orig_height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Fit a source size inside a bounding box without enlarging it.

    The width cap is applied first, then the height cap on the result,
    and both sides are rounded to the nearest pixel.

    Args:
        orig_width: Source width in pixels
        orig_height: Source height in pixels
        max_width: Bounding box width
        max_height: Bounding box height

    Returns:
        (width, height) of the target, each at least 1 and never larger
        than the source.
    """
    if orig_width <= 0 or orig_height <= 0:
        return max(orig_width, 0), max(orig_height, 0)

    aspect = orig_width / orig_height
    width: float = orig_width
    height: float = orig_height

    if width > max_width:
        width = max_width
        height = width / aspect

    if height > max_height:
        height = max_height
        width = height * aspect

    return (
        max(1, min(orig_width, round(width))),
        max(1, min(orig_height, round(height))),
    )
