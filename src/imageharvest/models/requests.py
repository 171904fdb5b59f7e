"""Request and configuration models for ImageHarvest."""

import asyncio
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderType(str, Enum):
    """Image generation vendors supported by the orchestrator."""

    OPENAI = "openai"
    DEZGO = "dezgo"
    GOOGLE = "google"
    GROK = "grok"


class ProviderConfig(BaseModel):
    """Resolved configuration for a provider key.

    ``type`` is kept as a plain string: configuration comes from an external
    registry and an unknown type must surface as an INVALID_PARAMS result,
    not as a validation exception.
    """

    type: Optional[str] = Field(None, description="Provider type (openai, dezgo, google, grok)")
    model: Optional[str] = Field(None, description="Vendor model identifier")
    url: Optional[str] = Field(None, description="API endpoint URL (required for dezgo)")
    size: Optional[str] = Field(None, description="Default image size, e.g. 1024x1024")
    quality: Optional[str] = Field(None, description="Default quality setting (OpenAI only)")


class ModelRecord(BaseModel):
    """A model entry as stored in the model registry."""

    name: str = Field(..., min_length=1, description="Provider key used by callers")
    provider: str = Field(..., description="Provider type this model belongs to")
    display_name: Optional[str] = None
    api_model: Optional[str] = Field(None, description="Vendor model identifier")
    api_url: Optional[str] = Field(None, description="Vendor endpoint URL")
    api_size: Optional[str] = Field(None, description="Default image size")
    api_quality: Optional[str] = None
    is_active: bool = True

    def to_provider_config(self) -> ProviderConfig:
        """Convert the record into the configuration consumed by providers."""
        return ProviderConfig(
            type=self.provider,
            url=self.api_url,
            model=self.api_model,
            size=self.api_size,
            quality=self.api_quality,
        )


class GenerationOptions(BaseModel):
    """Per-call generation options.

    ``size`` is respected by OpenAI and Google, ``quality`` by OpenAI only.
    ``signal`` is an abort event honoured by the httpx-based providers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    size: Optional[str] = None
    quality: Optional[str] = None
    seed: Optional[int] = None
    signal: Optional[asyncio.Event] = None
    n: Optional[int] = Field(None, ge=1, le=10)
    response_format: Optional[str] = None
    timeout: Optional[float] = Field(None, gt=0, description="Request timeout in seconds")
    max_attempts: Optional[int] = Field(None, ge=1, description="Overrides the provider's retry attempts")
