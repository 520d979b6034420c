import io
from typing import AsyncGenerator, Callable

import numpy as np
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image, ImageDraw


def encode(img: Image.Image, fmt: str = "JPEG", **params) -> bytes:
    output = io.BytesIO()
    img.save(output, format=fmt, **params)
    return output.getvalue()


def gradient_image(width: int, height: int) -> Image.Image:
    """RGB image with enough structure for the encoders and analyzer to chew on."""
    x = np.linspace(0, 255, width, dtype=np.float64)
    y = np.linspace(0, 255, height, dtype=np.float64)
    red = np.tile(x, (height, 1))
    green = np.tile(y[:, None], (1, width))
    blue = (red + green) / 2
    pixels = np.dstack([red, green, blue]).astype(np.uint8)
    img = Image.fromarray(pixels, "RGB")

    draw = ImageDraw.Draw(img)
    draw.rectangle(
        (width // 4, height // 4, width // 2, height // 2),
        fill=(220, 30, 30)
    )
    return img


@pytest.fixture
def to_bytes() -> Callable[..., bytes]:
    return encode


@pytest.fixture
def make_jpeg() -> Callable[..., bytes]:
    def _make(width: int, height: int, quality: int = 90) -> bytes:
        return encode(gradient_image(width, height), "JPEG", quality=quality)
    return _make


@pytest.fixture
def jpeg_2000() -> bytes:
    return encode(gradient_image(2000, 2000), "JPEG", quality=90)


@pytest.fixture
def landscape_jpeg() -> bytes:
    return encode(gradient_image(3000, 1000), "JPEG", quality=90)


@pytest.fixture
def transparent_png() -> bytes:
    img = Image.new("RGBA", (400, 400), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse((100, 100, 300, 300), fill=(0, 90, 200, 255))
    return encode(img, "PNG")


@pytest.fixture
def too_small_png() -> bytes:
    return encode(gradient_image(299, 299), "PNG")


@pytest.fixture
def corrupt_bytes() -> bytes:
    return b"this is definitely not an image" * 10


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    from product_imagery.main import app

    # Run lifespan so the shared pipeline is created and torn down
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
