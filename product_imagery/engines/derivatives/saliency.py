"""
Attention-weighted crop placement.

A spectral residual saliency map (Hou & Zhang) is computed on a small
greyscale copy of the image; the crop window is then slid along the axis
that has to lose pixels and placed where it keeps the most saliency.
The result is a `centering` tuple for `PIL.ImageOps.fit`.
"""

from typing import Tuple

import numpy as np
from PIL import Image, ImageFilter

CENTER = 0.5
WORK_SIZE = 64


def _box_filter(values: np.ndarray, size: int = 3) -> np.ndarray:
    pad = size // 2
    padded = np.pad(values, pad, mode="edge")
    rows, cols = values.shape
    out = np.zeros_like(values)
    for dy in range(size):
        for dx in range(size):
            out += padded[dy:dy + rows, dx:dx + cols]
    return out / (size * size)


def saliency_map(image: Image.Image, work_size: int = WORK_SIZE) -> np.ndarray:
    """Saliency in [0, 1] at reduced resolution, same aspect ratio as the image."""
    width, height = image.size
    scale = work_size / max(width, height)
    small = image.convert("L").resize(
        (max(1, round(width * scale)), max(1, round(height * scale))),
        Image.Resampling.BILINEAR
    )
    grey = np.asarray(small, dtype=np.float64)
    if grey.std() < 1e-6:
        return np.zeros_like(grey)

    spectrum = np.fft.fft2(grey)
    log_amplitude = np.log(np.abs(spectrum) + 1e-9)
    phase = np.angle(spectrum)
    residual = log_amplitude - _box_filter(log_amplitude)
    saliency = np.abs(np.fft.ifft2(np.exp(residual + 1j * phase))) ** 2

    peak = saliency.max()
    if not np.isfinite(peak) or peak <= 0:
        return np.zeros_like(grey)

    as_image = Image.fromarray(np.uint8(saliency / peak * 255))
    smoothed = as_image.filter(ImageFilter.GaussianBlur(radius=2))
    return np.asarray(smoothed, dtype=np.float64) / 255.0


def _best_offset(profile: np.ndarray, window: int) -> float:
    """Fractional start of the window with the largest sum, or center on ties."""
    excess = len(profile) - window
    if excess <= 0:
        return CENTER

    cumulative = np.concatenate(([0.0], np.cumsum(profile)))
    sums = cumulative[window:] - cumulative[:-window]
    if sums.max() - sums.min() <= 1e-9 * max(sums.max(), 1.0):
        return CENTER
    return float(np.argmax(sums)) / excess


def attention_centering(image: Image.Image, size: Tuple[int, int]) -> Tuple[float, float]:
    """
    Centering for a cover-fit crop of `image` to `size`.

    Args:
        image: Image to be cropped
        size: Target (width, height)

    Returns:
        (x, y) centering in [0, 1] as accepted by ImageOps.fit.
    """
    width, height = image.size
    target_width, target_height = size
    if not width or not height or not target_width or not target_height:
        return CENTER, CENTER

    saliency = saliency_map(image)
    map_height, map_width = saliency.shape

    target_aspect = target_width / target_height
    if width / height > target_aspect:
        window = max(1, round(map_height * target_aspect))
        return _best_offset(saliency.sum(axis=0), window), CENTER

    window = max(1, round(map_width / target_aspect))
    return CENTER, _best_offset(saliency.sum(axis=1), window)
