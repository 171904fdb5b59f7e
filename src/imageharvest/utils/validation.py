"""Payload, configuration and parameter validation helpers."""

import numbers
from typing import Any, Optional

from pydantic import BaseModel, Field

from imageharvest.interfaces import ModelConfigSource
from imageharvest.models.errors import PayloadTooLargeError
from imageharvest.models.requests import ProviderConfig

# 20MB (supports up to 2048x2048 PNG base64)
MAX_PAYLOAD_SIZE = 20 * 1024 * 1024

MIN_GUIDANCE = 0
MAX_GUIDANCE = 20


class ConfigValidation(BaseModel):
    """Outcome of a provider-config shape check."""

    valid: bool
    error: Optional[str] = None


class ParamValidation(BaseModel):
    """Outcome of a generation-parameter check."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


def validate_payload_size(data: Any) -> None:
    """Raise PayloadTooLargeError if raw response bytes exceed MAX_PAYLOAD_SIZE."""
    if data is None:
        return

    size = data.nbytes if isinstance(data, memoryview) else len(data)
    if size > MAX_PAYLOAD_SIZE:
        raise PayloadTooLargeError(f"Payload too large: {size} bytes (max {MAX_PAYLOAD_SIZE})")


def validate_base64_size(base64_string: str) -> None:
    """Raise PayloadTooLargeError if the decoded size estimate exceeds MAX_PAYLOAD_SIZE."""
    estimated_size = (len(base64_string) * 3) / 4

    if estimated_size > MAX_PAYLOAD_SIZE:
        raise PayloadTooLargeError(
            f"Base64 payload too large: ~{round(estimated_size)} bytes (max {MAX_PAYLOAD_SIZE})"
        )


def validate_provider_config(config: ProviderConfig | None) -> ConfigValidation:
    """Structural check of a resolved provider config. Never raises."""
    if config is None:
        return ConfigValidation(valid=False, error="Config is missing")

    if not config.type:
        return ConfigValidation(valid=False, error="Config is missing required field: type")

    if config.type.lower() == "dezgo":
        if not config.url:
            return ConfigValidation(valid=False, error="Dezgo config is missing required field: url")
        if not config.model:
            return ConfigValidation(valid=False, error="Dezgo config is missing required field: model")

    return ConfigValidation(valid=True)


async def validate_image_params(
    prompt: Any,
    guidance: Any,
    provider_key: Optional[str],
    config_source: ModelConfigSource,
) -> ParamValidation:
    """
    Validate generation parameters before any provider call.

    Args:
        prompt: Image generation prompt (non-empty string)
        guidance: Optional guidance value, 0-20 when supplied
        provider_key: Provider key that must resolve through config_source
        config_source: Model configuration lookup

    Returns:
        ParamValidation with every problem found
    """
    errors: list[str] = []

    if not isinstance(prompt, str) or not prompt.strip():
        errors.append("Invalid prompt: prompt must be a non-empty string")

    if guidance is not None:
        is_number = isinstance(guidance, numbers.Real) and not isinstance(guidance, bool)
        if not is_number or not MIN_GUIDANCE <= guidance <= MAX_GUIDANCE:
            errors.append(f"Invalid guidance value (must be {MIN_GUIDANCE}-{MAX_GUIDANCE} if provided)")

    if not provider_key:
        errors.append("Provider key is required")
    else:
        try:
            await config_source.get_model_config(provider_key)
        except Exception as e:
            errors.append(f"Invalid provider key: {provider_key} - {str(e)}")

    return ParamValidation(is_valid=not errors, errors=errors)
