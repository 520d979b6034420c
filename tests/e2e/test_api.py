import base64
import json
import time
from unittest.mock import MagicMock

import pytest

from product_imagery.api.dependencies import get_pipeline
from product_imagery.engines.derivatives.generator import DerivativeGenerator
from product_imagery.main import app
from product_imagery.pipeline.orchestrator import ImagePipeline


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_validate_accepts_good_image(client, make_jpeg):
    response = await client.post(
        "/api/v1/images/validate",
        files={"file": ("card.jpg", make_jpeg(800, 600), "image/jpeg")}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["width"] == 800
    assert data["format"] == "jpeg"


@pytest.mark.asyncio
async def test_validate_reports_small_image(client, too_small_png):
    response = await client.post(
        "/api/v1/images/validate",
        files={"file": ("tiny.png", too_small_png, "image/png")}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["reason"] == "image_too_small"
    assert "too small" in data["error"]


@pytest.mark.asyncio
async def test_process_returns_derivatives(client, jpeg_2000):
    response = await client.post(
        "/api/v1/images/process",
        files={"file": ("IMG_0001.jpg", jpeg_2000, "image/jpeg")},
        data={"product_name": "Gloss Flyer"}
    )
    assert response.status_code == 200
    data = response.json()

    # FLYER caps at 1200px
    assert data["metadata"]["width"] == 1200
    assert data["metadata"]["profile_used"] == "FLYER"
    assert data["alt_text"] == "Gloss Flyer product image"
    assert data["sizes"]["avif"] == 0
    assert data["sizes"]["optimized"] == data["metadata"]["size"]
    assert data["blur_data_url"].startswith("data:image/jpeg;base64,")
    assert data["derivatives"]["avif"] is None
    assert len(base64.b64decode(data["derivatives"]["thumbnail"])) == data["sizes"]["thumbnail"]


@pytest.mark.asyncio
async def test_process_accepts_camel_case_options(client, jpeg_2000):
    options = {"productProfile": "PREMIUM", "generateWebP": False, "quality": 80}
    response = await client.post(
        "/api/v1/images/process",
        files={"file": ("banner.jpg", jpeg_2000, "image/jpeg")},
        data={"product_name": "Vinyl Banner", "options": json.dumps(options), "include_buffers": "false"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["profile_used"] == "PREMIUM"
    assert data["metadata"]["width"] == 2000
    assert data["sizes"]["webp"] == 0
    assert data["derivatives"] == {}


@pytest.mark.asyncio
async def test_process_rejects_small_image(client, too_small_png):
    response = await client.post(
        "/api/v1/images/process",
        files={"file": ("tiny.png", too_small_png, "image/png")}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["stage"] == "validation"
    assert data["details"]["reason"] == "image_too_small"
    assert "too small" in data["error"]


@pytest.mark.asyncio
async def test_process_rejects_bad_options(client, make_jpeg):
    response = await client.post(
        "/api/v1/images/process",
        files={"file": ("card.jpg", make_jpeg(600, 600), "image/jpeg")},
        data={"options": "{not json"}
    )
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "invalid_options"


@pytest.mark.asyncio
async def test_process_rejects_out_of_range_quality(client, make_jpeg):
    response = await client.post(
        "/api/v1/images/process",
        files={"file": ("card.jpg", make_jpeg(600, 600), "image/jpeg")},
        data={"options": json.dumps({"quality": 150})}
    )
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "invalid_options"


@pytest.mark.asyncio
async def test_process_timeout_maps_to_504(client, make_jpeg):
    generator = MagicMock(spec=DerivativeGenerator)
    generator.generate.side_effect = lambda *args, **kwargs: time.sleep(1.0)
    slow_pipeline = ImagePipeline(generator=generator, timeout_seconds=0.05)
    app.dependency_overrides[get_pipeline] = lambda: slow_pipeline
    try:
        response = await client.post(
            "/api/v1/images/process",
            files={"file": ("slow.jpg", make_jpeg(600, 600), "image/jpeg")}
        )
    finally:
        app.dependency_overrides.pop(get_pipeline, None)
        slow_pipeline.close()

    assert response.status_code == 504
    assert "deadline" in response.json()["error"]


@pytest.mark.asyncio
async def test_metrics_endpoint(client, make_jpeg):
    await client.post(
        "/api/v1/images/validate",
        files={"file": ("card.jpg", make_jpeg(600, 600), "image/jpeg")}
    )
    response = await client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert "image_validations_total" in response.text
