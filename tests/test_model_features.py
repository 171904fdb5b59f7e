"""Tests for Dezgo model feature detection."""

import pytest

from imageharvest.services.model_registry import DEZGO_FLUX, DEZGO_SDXL, DEZGO_SDXL_LIGHTNING, DEZGO_TEXT2IMAGE
from imageharvest.utils.model_features import (
    compute_dezgo_guidance,
    generate_random_nine_digit_number,
    is_flux_model,
    is_lightning_model,
    is_redshift_model,
    is_sdxl_model,
)


def test_feature_detection_is_null_safe():
    assert is_flux_model(None) is False
    assert is_sdxl_model(None) is False
    assert is_lightning_model(None, None) is False
    assert is_redshift_model(None) is False


def test_feature_detection():
    assert is_flux_model(DEZGO_FLUX) is True
    assert is_flux_model(DEZGO_SDXL) is False

    assert is_sdxl_model(DEZGO_SDXL) is True
    assert is_sdxl_model(DEZGO_SDXL_LIGHTNING) is True
    assert is_sdxl_model(DEZGO_TEXT2IMAGE) is False

    assert is_lightning_model(DEZGO_SDXL_LIGHTNING, None) is True
    assert is_lightning_model(DEZGO_SDXL, "DreamshaperXL_Lightning_1024px") is True
    assert is_lightning_model(DEZGO_SDXL, "juggernautxl_1024px") is False

    assert is_redshift_model("Redshift_Diffusion_768px") is True
    assert is_redshift_model("openjourney_2") is False


@pytest.mark.parametrize("requested", [None, 0, 7.5, 999])
def test_lightning_guidance_is_always_one(requested):
    assert compute_dezgo_guidance(DEZGO_SDXL, "dreamshaper_lightning", requested) == 1
    assert compute_dezgo_guidance(DEZGO_SDXL_LIGHTNING, "any", requested) == 1


def test_redshift_guidance():
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "redshift-x", 999) == 15
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "redshift-x", None) == 5
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "redshift-x", 0.5) == 1
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "redshift-x", 9) == 9


def test_default_guidance():
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "m", -5) == 1
    assert compute_dezgo_guidance(DEZGO_TEXT2IMAGE, "m", None) == 7.5
    assert compute_dezgo_guidance(DEZGO_SDXL, "m", 50) == 20
    assert compute_dezgo_guidance(DEZGO_SDXL, "m", 12) == 12


def test_random_nine_digit_number():
    for _ in range(200):
        value = generate_random_nine_digit_number()
        assert 100_000_000 <= value <= 999_999_999
        assert len(str(value)) == 9
