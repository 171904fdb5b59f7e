"""Provider registry and construction."""

import logging
from typing import Any

from imageharvest.models.requests import ProviderType
from imageharvest.providers.base import BaseProvider
from imageharvest.providers.dezgo_provider import DezgoProvider
from imageharvest.providers.google_provider import GoogleImagenProvider
from imageharvest.providers.grok_provider import GrokProvider
from imageharvest.providers.openai_provider import OpenAIImageProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: dict[str, type[BaseProvider]] = {
    ProviderType.OPENAI.value: OpenAIImageProvider,
    ProviderType.DEZGO.value: DezgoProvider,
    ProviderType.GOOGLE.value: GoogleImagenProvider,
    ProviderType.GROK.value: GrokProvider,
}


class ProviderFactory:
    """Case-insensitive registry mapping provider names to provider classes."""

    def __init__(self, providers: dict[str, type[BaseProvider]] | None = None):
        self._providers: dict[str, type[BaseProvider]] = {}
        for name, provider_class in (DEFAULT_PROVIDERS if providers is None else providers).items():
            self.register_provider(name, provider_class)

    def create_provider(self, name: str, **kwargs: Any) -> BaseProvider:
        """
        Instantiate a registered provider.

        Args:
            name: Provider name (case-insensitive)
            **kwargs: Constructor arguments (settings, http_client, ...)

        Raises:
            ValueError: If no provider is registered under name
        """
        provider_class = self._providers.get(name.lower())
        if provider_class is None:
            valid = ", ".join(self.get_registered_providers())
            raise ValueError(f"Unknown provider: {name}. Valid providers: {valid}")
        return provider_class(**kwargs)

    def register_provider(self, name: str, provider_class: type[BaseProvider]) -> None:
        """Register a provider class, replacing any existing registration."""
        key = name.lower()
        if key in self._providers:
            logger.warning(f"⚠️ [ProviderFactory] Provider {key} already registered, overwriting")
        self._providers[key] = provider_class

    def get_registered_providers(self) -> list[str]:
        return list(self._providers.keys())

    def is_provider_registered(self, name: str) -> bool:
        return name.lower() in self._providers


default_factory = ProviderFactory()


def create_provider(name: str, **kwargs: Any) -> BaseProvider:
    return default_factory.create_provider(name, **kwargs)


def register_provider(name: str, provider_class: type[BaseProvider]) -> None:
    default_factory.register_provider(name, provider_class)


def get_registered_providers() -> list[str]:
    return default_factory.get_registered_providers()


def is_provider_registered(name: str) -> bool:
    return default_factory.is_provider_registered(name)
