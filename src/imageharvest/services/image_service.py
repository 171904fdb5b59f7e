"""Image generation orchestrator: validation, config resolution and provider dispatch."""

import asyncio
import logging
import math
import numbers
import random
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar, Union

import httpx
from pydantic import ValidationError

from imageharvest.config import ProviderSettings, get_settings
from imageharvest.interfaces import ModelConfigSource, ModelRegistry
from imageharvest.models.errors import ErrorKind
from imageharvest.models.requests import GenerationOptions, ProviderConfig
from imageharvest.models.responses import GenerationResult, create_error_result
from imageharvest.providers.base import BaseProvider
from imageharvest.providers.factory import ProviderFactory, default_factory
from imageharvest.services.config_cache import ModelConfigCache
from imageharvest.services.model_registry import StaticModelRegistry
from imageharvest.services.retry_service import RetryOptions
from imageharvest.utils.http import create_http_client
from imageharvest.utils.validation import validate_image_params, validate_provider_config

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_CONCURRENT_MULTI_PROVIDER = 5


async def batch_process(
    items: Sequence[T],
    fn: Callable[[T, int], Awaitable[R]],
    limit: int,
) -> list[Union[R, BaseException]]:
    """
    Run fn over items with at most ``limit`` calls in flight.

    Results are returned in input order. A call that raises yields its
    exception in place of a result; nothing is raised to the caller.
    """
    if limit >= len(items):
        return await asyncio.gather(
            *(fn(item, index) for index, item in enumerate(items)),
            return_exceptions=True,
        )

    semaphore = asyncio.Semaphore(limit)

    async def _run(item: T, index: int) -> R:
        async with semaphore:
            return await fn(item, index)

    return await asyncio.gather(
        *(_run(item, index) for index, item in enumerate(items)),
        return_exceptions=True,
    )


def _is_seed(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _split_seed(
    options_or_seed: Union[float, GenerationOptions, Mapping[str, Any], None],
) -> tuple[Optional[float], GenerationOptions]:
    """Separate the provider-selection seed from the options forwarded to the provider."""
    if options_or_seed is None:
        return None, GenerationOptions()

    if isinstance(options_or_seed, GenerationOptions):
        return options_or_seed.seed, options_or_seed.model_copy(update={"seed": None})

    if isinstance(options_or_seed, Mapping):
        rest = dict(options_or_seed)
        seed = rest.pop("seed", None)
        if seed is not None and not _is_seed(seed):
            raise TypeError(f"seed must be a finite number, got {seed!r}")
        return seed, GenerationOptions(**rest)

    if _is_seed(options_or_seed):
        return options_or_seed, GenerationOptions()

    raise TypeError(f"seed must be a finite number, got {options_or_seed!r}")


class ImageGenerator:
    """Unified entry point for image generation across all providers."""

    def __init__(
        self,
        registry: ModelRegistry | None = None,
        config_source: ModelConfigSource | None = None,
        settings: ProviderSettings | None = None,
        factory: ProviderFactory | None = None,
        retry_options: RetryOptions | None = None,
        http_client: httpx.AsyncClient | None = None,
        max_concurrency: int = MAX_CONCURRENT_MULTI_PROVIDER,
    ):
        """
        Initialize the generator.

        Args:
            registry: Model registry (static catalog if None)
            config_source: Provider-key config lookup (TTL cache over registry if None)
            settings: Provider credentials (environment-backed settings if None)
            factory: Provider factory (module default with all providers if None)
            retry_options: Base retry options handed to every provider
            http_client: Shared AsyncClient (created lazily and owned if None)
            max_concurrency: In-flight limit for multi-provider generation
        """
        self.registry = registry or StaticModelRegistry()
        self.config_source = config_source or ModelConfigCache(self.registry)
        self.settings = settings or get_settings()
        self.factory = factory or default_factory
        self.retry_options = retry_options
        self.max_concurrency = max_concurrency
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._providers: dict[str, BaseProvider] = {}

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = create_http_client()
        return self._http_client

    def get_provider(self, provider_type: str) -> BaseProvider:
        """Return the provider instance for a type, creating it on first use."""
        key = provider_type.lower()
        provider = self._providers.get(key)
        if provider is None:
            provider = self.factory.create_provider(
                key,
                settings=self.settings,
                model_registry=self.registry,
                retry_options=self.retry_options,
                http_client=self.http_client,
            )
            self._providers[key] = provider
        return provider

    async def aclose(self) -> None:
        """Close the shared HTTP client if this generator created it."""
        for provider in self._providers.values():
            await provider.aclose()
        self._providers.clear()

        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ImageGenerator":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _generate_with_provider(
        self,
        config: ProviderConfig,
        prompt: str,
        guidance: Optional[float],
        user_id: Optional[str],
        options: GenerationOptions,
    ) -> GenerationResult:
        config_validation = validate_provider_config(config)
        if not config_validation.valid:
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                f"Invalid provider config: {config_validation.error}",
                retryable=False,
            )

        if not self.factory.is_provider_registered(config.type):
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                f"Unknown provider type: {config.type}",
                retryable=False,
            )

        # Explicit per-call values win even when falsy
        merged_options = options.model_copy(update={
            "size": options.size if options.size is not None else config.size,
            "quality": options.quality if options.quality is not None else config.quality,
        })

        provider = self.get_provider(config.type)

        if merged_options.size is not None and not provider.supports_size:
            logger.debug(f"[ImageGenerator] {provider.name} ignores size={merged_options.size}")
        if merged_options.quality is not None and not provider.supports_quality:
            logger.debug(f"[ImageGenerator] {provider.name} ignores quality={merged_options.quality}")

        return await provider.generate_image(
            prompt,
            guidance,
            config.model or provider.default_model,
            user_id,
            merged_options,
            endpoint=config.url,
        )

    async def generate_provider_image(
        self,
        provider_key: str,
        prompt: str,
        guidance: Optional[float] = None,
        user_id: Optional[str] = None,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """
        Generate one image with the provider configured under provider_key.

        Args:
            provider_key: Key resolved through the model config source
            prompt: Text prompt for image generation
            guidance: Optional guidance (0-20)
            user_id: Caller's user id
            options: Per-call options; size/quality override the config defaults

        Returns:
            The provider's GenerationResult, or INVALID_PARAMS / UNKNOWN failures
            raised before the provider is reached
        """
        options = options or GenerationOptions()

        validation = await validate_image_params(prompt, guidance, provider_key, self.config_source)
        if not validation.is_valid:
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                f"Invalid parameters: {', '.join(validation.errors)}",
                retryable=False,
            )

        try:
            config = await self.config_source.get_model_config(provider_key)
            return await self._generate_with_provider(config, prompt, guidance, user_id, options)
        except Exception as e:
            logger.error(f"❌ [ImageGenerator] Generation failed for {provider_key}: {str(e)}")
            return create_error_result(
                ErrorKind.UNKNOWN,
                f"Generation failed: {str(e)}",
                retryable=False,
            )

    async def generate_multiple_provider_images(
        self,
        providers: Sequence[str],
        prompt: str,
        guidance: Optional[float] = None,
        user_id: Optional[str] = None,
        options: GenerationOptions | None = None,
    ) -> list[GenerationResult]:
        """
        Generate with several providers concurrently.

        Always returns one result per provider key, in input order.
        """
        start_time = time.monotonic()

        outcomes = await batch_process(
            providers,
            lambda provider_key, _index: self.generate_provider_image(
                provider_key, prompt, guidance, user_id, options
            ),
            self.max_concurrency,
        )

        results: list[GenerationResult] = []
        for provider_key, outcome in zip(providers, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"❌ [ImageGenerator] Provider {provider_key} raised: {str(outcome)}")
                results.append(create_error_result(
                    ErrorKind.UNKNOWN,
                    str(outcome) or "Provider call failed",
                    retryable=False,
                    meta={
                        "provider": provider_key,
                        "duration_ms": int((time.monotonic() - start_time) * 1000),
                    },
                ))
            else:
                results.append(outcome)

        return results

    async def generate_random_provider_image(
        self,
        providers: Sequence[str],
        prompt: str,
        guidance: Optional[float] = None,
        user_id: Optional[str] = None,
        options_or_seed: Union[float, GenerationOptions, Mapping[str, Any], None] = None,
    ) -> GenerationResult:
        """
        Generate with one provider picked from providers.

        A seed, given as a bare number or inside the options, selects
        ``providers[int(abs(seed)) % len(providers)]``; otherwise the pick is uniform.
        Unparseable options come back as INVALID_PARAMS.
        """
        if not providers:
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                "No providers supplied for image generation",
                retryable=False,
                meta={"provider_count": len(providers or [])},
            )

        try:
            seed, options = _split_seed(options_or_seed)
        except (TypeError, ValidationError) as e:
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                "Invalid parameters: options could not be parsed",
                details=str(e),
                retryable=False,
                meta={"provider_count": len(providers)},
            )

        if seed is not None:
            index = int(abs(seed)) % len(providers)
        else:
            index = random.randrange(len(providers))

        return await self.generate_provider_image(providers[index], prompt, guidance, user_id, options)

    # ------------------------------------------------------------------
    # Configuration access
    # ------------------------------------------------------------------

    async def get_available_providers(self) -> list[str]:
        return await self.registry.get_valid_model_names()

    async def get_provider_config(self, provider_key: str) -> Optional[ProviderConfig]:
        try:
            return await self.config_source.get_model_config(provider_key)
        except Exception:
            return None

    async def is_provider_available(self, provider_key: str) -> bool:
        return await self.registry.is_model_valid(provider_key)
