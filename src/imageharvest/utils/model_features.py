"""Model feature detection for Dezgo endpoints (null-safe, case-insensitive)."""

import random
from typing import Optional

SEED_MIN = 100_000_000
SEED_MAX = 999_999_999


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def is_flux_model(url: Optional[str]) -> bool:
    return _contains(url, "text2image_flux")


def is_sdxl_model(url: Optional[str]) -> bool:
    return _contains(url, "text2image_sdxl")


def is_lightning_model(url: Optional[str], model: Optional[str]) -> bool:
    return _contains(url, "text2image_sdxl_lightning") or _contains(model, "lightning")


def is_redshift_model(model: Optional[str]) -> bool:
    return _contains(model, "redshift")


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def compute_dezgo_guidance(url: Optional[str], model: Optional[str], requested_guidance: Optional[float]) -> float:
    """
    Return the guidance value a Dezgo model family accepts.

    Lightning models always run at 1; redshift clamps into [1, 15] around a
    default of 5; SDXL and everything else clamp into [1, 20] around 7.5.
    """
    if is_lightning_model(url, model):
        return 1

    if is_redshift_model(model):
        return _clamp(requested_guidance if requested_guidance is not None else 5, 1, 15)

    return _clamp(requested_guidance if requested_guidance is not None else 7.5, 1, 20)


def generate_random_nine_digit_number() -> int:
    """Uniform seed in [100000000, 999999999]."""
    return random.randint(SEED_MIN, SEED_MAX)
