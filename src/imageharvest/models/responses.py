"""Result envelope models for ImageHarvest."""

import uuid
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from imageharvest.models.errors import ErrorKind


def generate_request_id() -> str:
    """Return an opaque, collision-resistant request identifier."""
    return uuid.uuid4().hex


class RequestMeta(BaseModel):
    """Correlation data attached to every generation result."""

    model_config = ConfigDict(extra="allow")

    request_id: str = Field(default_factory=generate_request_id, description="Unique id of this generation call")
    provider: Optional[str] = Field(None, description="Provider type or provider key that handled the call")
    model: Optional[str] = Field(None, description="Vendor model identifier")
    endpoint: Optional[str] = Field(None, description="Vendor endpoint URL")
    duration_ms: int = Field(0, ge=0, description="Wall-clock duration of the provider call in milliseconds")


class GenerationSuccess(BaseModel):
    """Successful generation carrying a base64-encoded image."""

    success: Literal[True] = True
    data: str = Field(..., min_length=1, description="Base64-encoded image")
    meta: RequestMeta


class GenerationFailure(BaseModel):
    """Failed generation described with the fixed error taxonomy."""

    success: Literal[False] = False
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorKind = Field(..., description="Error category code")
    details: Optional[str] = Field(None, description="Optional vendor detail for debugging")
    retryable: bool = Field(False, description="Whether the caller may attempt the same request again")
    meta: RequestMeta

    @field_validator("details", mode="before")
    @classmethod
    def coerce_details(cls, value: Any) -> Optional[str]:
        """Vendor error bodies are not always strings."""
        if value is None or isinstance(value, str):
            return value
        return str(value)


GenerationResult = Union[GenerationSuccess, GenerationFailure]


def _build_meta(meta: RequestMeta | Mapping[str, Any] | None) -> RequestMeta:
    if meta is None:
        return RequestMeta()
    if isinstance(meta, RequestMeta):
        return meta
    values = {key: value for key, value in meta.items() if value is not None}
    return RequestMeta(**values)


def create_success_result(
    data: str,
    meta: RequestMeta | Mapping[str, Any] | None = None,
) -> GenerationSuccess:
    """Build the success variant of a generation result."""
    return GenerationSuccess(data=data, meta=_build_meta(meta))


def create_error_result(
    code: ErrorKind,
    message: str,
    *,
    details: Any = None,
    retryable: bool = False,
    meta: RequestMeta | Mapping[str, Any] | None = None,
) -> GenerationFailure:
    """
    Build the error variant of a generation result.

    Args:
        code: Error category from the fixed taxonomy
        message: Human-readable error message
        details: Optional vendor detail (echoed, never parsed)
        retryable: Whether the caller may retry the same request later
        meta: Request metadata; a request id is generated when absent

    Returns:
        GenerationFailure envelope
    """
    return GenerationFailure(
        error=message,
        error_code=code,
        details=details,
        retryable=retryable,
        meta=_build_meta(meta),
    )
