"""TTL cache in front of the model registry's provider configs."""

import logging
import time
from typing import Callable, Optional

from imageharvest.interfaces import ModelRegistry
from imageharvest.models.requests import ProviderConfig

logger = logging.getLogger(__name__)

MODEL_CONFIG_CACHE_TTL = 60.0  # seconds


class ModelConfigCache:
    """Resolves provider keys to configs, caching each entry for a fixed TTL."""

    def __init__(
        self,
        registry: ModelRegistry,
        ttl_seconds: float = MODEL_CONFIG_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            registry: Model registry that owns the configurations
            ttl_seconds: How long an entry stays fresh
            clock: Monotonic time source (injectable for tests)
        """
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[ProviderConfig, float]] = {}

    async def get_model_config(self, provider_key: str) -> ProviderConfig:
        """
        Return the provider config for a key.

        Raises:
            LookupError: If the key is unknown or inactive
        """
        cached = self._entries.get(provider_key)
        if cached and self._clock() - cached[1] < self.ttl_seconds:
            return cached[0]

        try:
            config = await self.registry.get_image_generator_config(provider_key)
        except Exception as e:
            logger.error(f"❌ [ModelConfigCache] Failed to get config for {provider_key}: {str(e)}")
            raise

        if config is None:
            raise LookupError(f"Model configuration not found for provider: {provider_key}")

        self._entries[provider_key] = (config, self._clock())
        return config

    def invalidate(self, provider_key: Optional[str] = None) -> None:
        """Drop one cached entry, or all of them."""
        if provider_key is None:
            self._entries.clear()
        else:
            self._entries.pop(provider_key, None)
