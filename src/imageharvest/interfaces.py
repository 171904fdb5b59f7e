"""Protocol interfaces for the collaborators ImageHarvest consumes."""

from typing import Optional, Protocol

from typing_extensions import runtime_checkable

from imageharvest.models.requests import ModelRecord, ProviderConfig


@runtime_checkable
class ModelRegistry(Protocol):
    """Source of truth for configured image models (database or static catalog)."""

    async def get_models_by_provider(self, provider: str) -> list[ModelRecord]:
        """Return every model record belonging to a provider type."""
        ...

    async def get_valid_model_names(self) -> list[str]:
        """Return the provider keys of all known models."""
        ...

    async def is_model_valid(self, model_name: str) -> bool:
        """Return True if the provider key exists and is active."""
        ...

    async def get_image_generator_config(self, model_name: str) -> Optional[ProviderConfig]:
        """Return the provider config for an active provider key, or None."""
        ...


@runtime_checkable
class ModelConfigSource(Protocol):
    """Resolves a provider key into a ProviderConfig (usually cached)."""

    async def get_model_config(self, provider_key: str) -> ProviderConfig:
        """Return the config for provider_key. Raises LookupError when unknown."""
        ...
