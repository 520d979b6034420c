from product_imagery.core.exceptions import (
    ImageValidationError,
    ProcessingError,
    ProcessingTimeoutError,
)
from product_imagery.core.logging import LogContext, add_app_context, image_id_var, stage_var


def test_log_context_sets_and_restores():
    assert image_id_var.get() is None

    with LogContext(image_id="img-1", stage="derivatives"):
        assert image_id_var.get() == "img-1"
        with LogContext(stage="content_analysis"):
            assert stage_var.get() == "content_analysis"
            assert image_id_var.get() == "img-1"
        assert stage_var.get() == "derivatives"

    assert image_id_var.get() is None
    assert stage_var.get() is None


def test_app_context_processor_does_not_override_explicit_stage():
    with LogContext(image_id="img-2", stage="derivatives"):
        event = add_app_context(None, "info", {"event": "x", "stage": "validation"})

    assert event["image_id"] == "img-2"
    assert event["stage"] == "validation"
    assert "version" in event


def test_exceptions_pick_up_image_id_from_context():
    with LogContext(image_id="img-3"):
        error = ProcessingError("Failed to process image: boom", cause=ValueError("boom"))

    assert error.image_id == "img-3"
    assert error.stage == "derivatives"
    assert error.details == {"cause": "boom", "cause_type": "ValueError"}


def test_exception_codes():
    assert ImageValidationError("bad", reason="image_too_small").code == 400
    assert ProcessingError("bad").code == 500
    timeout = ProcessingTimeoutError(15.0, filename="a.jpg")
    assert timeout.code == 504
    assert timeout.message == "Image processing exceeded 15s deadline"
    assert timeout.details["filename"] == "a.jpg"
