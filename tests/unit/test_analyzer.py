import numpy as np
import pytest
from PIL import Image

from product_imagery.engines.derivatives.analyzer import ContentAnalyzer, analyze_content
from product_imagery.engines.derivatives.schemas import ContentAnalysis


def test_transparent_png_reports_transparency(transparent_png):
    analysis = analyze_content(transparent_png)

    assert analysis.has_transparency is True
    assert analysis.dominant_colors == 200
    assert analysis.degraded is False


def test_corrupt_input_returns_safe_defaults(corrupt_bytes):
    analysis = analyze_content(corrupt_bytes)

    assert analysis.degraded is True
    assert analysis.has_transparency is False
    assert analysis.average_contrast == 0.5
    assert analysis.is_high_contrast is False
    assert analysis.text_likelihood == 0.5
    assert analysis.recommended_quality == 75
    assert analysis.dominant_colors == 100


def test_safe_default_matches_documented_values():
    default = ContentAnalysis.safe_default()
    assert default.model_dump(exclude={"degraded"}) == ContentAnalysis().model_dump(exclude={"degraded"})


def test_flat_mid_grey_prefers_higher_quality(to_bytes):
    analysis = analyze_content(to_bytes(Image.new("RGB", (400, 400), (128, 128, 128)), "PNG"))

    assert analysis.average_contrast == pytest.approx(0.0)
    assert analysis.text_likelihood == pytest.approx(0.0)
    assert analysis.recommended_quality == 80


def test_bright_image_is_high_contrast(to_bytes):
    analysis = analyze_content(to_bytes(Image.new("RGB", (400, 400), (255, 255, 255)), "PNG"))

    assert analysis.is_high_contrast is True
    assert analysis.recommended_quality == 70


def test_moderate_contrast_is_balanced(to_bytes):
    analysis = analyze_content(to_bytes(Image.new("RGB", (400, 400), (180, 180, 180)), "PNG"))

    assert analysis.average_contrast == pytest.approx(52 / 128)
    assert analysis.is_high_contrast is False
    assert analysis.recommended_quality == 75


def test_text_likelihood_wins_over_low_contrast(to_bytes):
    # Red alternates 0/255 per column while overall brightness stays near mid-grey
    pixels = np.zeros((400, 400, 3), dtype=np.uint8)
    pixels[:, 0::2] = (0, 192, 192)
    pixels[:, 1::2] = (255, 64, 64)

    analysis = analyze_content(to_bytes(Image.fromarray(pixels, "RGB"), "PNG"))

    assert analysis.average_contrast < 0.3
    assert analysis.text_likelihood > 0.7
    assert analysis.recommended_quality == 70


def test_contrast_is_sampled_from_leading_pixels_only(to_bytes):
    # First 10000 pixels (100 rows of 100) are mid-grey, the rest white
    pixels = np.full((400, 100, 3), 255, dtype=np.uint8)
    pixels[:100] = 128

    analysis = ContentAnalyzer(sample_pixels=10000).analyze(
        to_bytes(Image.fromarray(pixels, "RGB"), "PNG")
    )

    assert analysis.average_contrast == pytest.approx(0.0)
    assert analysis.recommended_quality == 80


@pytest.mark.parametrize("mode,expected_transparency,expected_colors", [
    ("L", False, 50),
    ("LA", True, 100),
    ("RGB", False, 150),
    ("RGBA", True, 200),
])
def test_channel_count_drives_transparency_and_colors(to_bytes, mode, expected_transparency, expected_colors):
    img = Image.new(mode, (320, 320))

    analysis = analyze_content(to_bytes(img, "PNG"))

    assert analysis.has_transparency is expected_transparency
    assert analysis.dominant_colors == expected_colors


def test_cmyk_is_opaque(to_bytes):
    img = Image.new("CMYK", (320, 320), (0, 40, 80, 0))

    analysis = analyze_content(to_bytes(img, "JPEG"))

    assert analysis.has_transparency is False
    assert analysis.dominant_colors == 200
    assert analysis.degraded is False


def test_palette_with_transparency_counts_alpha(to_bytes):
    img = Image.new("P", (320, 320), 0)
    img.putpalette([255, 255, 255, 0, 0, 0] * 128)

    analysis = analyze_content(to_bytes(img, "PNG", transparency=0))

    assert analysis.has_transparency is True


def test_recommended_quality_stays_in_range(make_jpeg):
    for width, height in [(400, 300), (1000, 1000), (320, 1200)]:
        quality = analyze_content(make_jpeg(width, height)).recommended_quality
        assert 60 <= quality <= 85
