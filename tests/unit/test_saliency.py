from PIL import Image, ImageDraw

from product_imagery.engines.derivatives.saliency import attention_centering, saliency_map


def blob_image(size, box):
    img = Image.new("RGB", size, (255, 255, 255))
    ImageDraw.Draw(img).rectangle(box, fill=(0, 0, 0))
    return img


def test_uniform_image_is_centered():
    img = Image.new("RGB", (1200, 400), (200, 200, 200))

    assert attention_centering(img, (200, 200)) == (0.5, 0.5)


def test_saliency_map_is_normalized():
    saliency = saliency_map(blob_image((800, 600), (100, 100, 200, 200)))

    assert saliency.shape == (48, 64)
    assert saliency.min() >= 0.0
    assert saliency.max() <= 1.0


def test_wide_image_crop_moves_toward_subject():
    img = blob_image((1200, 400), (1000, 120, 1150, 280))

    x, y = attention_centering(img, (200, 200))

    assert x > 0.8
    assert y == 0.5


def test_tall_image_crop_moves_toward_subject():
    img = blob_image((400, 1200), (120, 40, 280, 200))

    x, y = attention_centering(img, (200, 200))

    assert x == 0.5
    assert y < 0.2


def test_matching_aspect_needs_no_offset():
    img = blob_image((600, 600), (0, 0, 100, 100))

    assert attention_centering(img, (200, 200)) == (0.5, 0.5)
