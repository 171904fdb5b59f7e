"""ImageHarvest - Multi-provider image generation orchestration."""

from imageharvest.config import ProviderSettings, get_settings
from imageharvest.interfaces import ModelConfigSource, ModelRegistry
from imageharvest.models.errors import ErrorKind
from imageharvest.models.requests import GenerationOptions, ModelRecord, ProviderConfig, ProviderType
from imageharvest.models.responses import (
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
    RequestMeta,
    create_error_result,
    create_success_result,
    generate_request_id,
)
from imageharvest.providers.base import BaseProvider, ImageProvider
from imageharvest.providers.factory import (
    ProviderFactory,
    create_provider,
    get_registered_providers,
    is_provider_registered,
    register_provider,
)
from imageharvest.services.config_cache import ModelConfigCache
from imageharvest.services.image_service import ImageGenerator
from imageharvest.services.model_registry import StaticModelRegistry
from imageharvest.services.retry_service import RetryOptions, is_retryable_error, with_retry

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ProviderSettings",
    "get_settings",
    # Interfaces
    "ModelConfigSource",
    "ModelRegistry",
    "ImageProvider",
    # Result/Error types
    "ErrorKind",
    "GenerationFailure",
    "GenerationResult",
    "GenerationSuccess",
    "RequestMeta",
    "create_error_result",
    "create_success_result",
    "generate_request_id",
    # Request types
    "GenerationOptions",
    "ModelRecord",
    "ProviderConfig",
    "ProviderType",
    # Providers
    "BaseProvider",
    "ProviderFactory",
    "create_provider",
    "get_registered_providers",
    "is_provider_registered",
    "register_provider",
    # Services
    "ImageGenerator",
    "ModelConfigCache",
    "StaticModelRegistry",
    # Utilities
    "RetryOptions",
    "is_retryable_error",
    "with_retry",
]
