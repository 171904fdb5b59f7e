"""Base provider interface for image generation."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol

import httpx
from typing_extensions import runtime_checkable

from imageharvest.config import ProviderSettings, get_settings
from imageharvest.interfaces import ModelRegistry
from imageharvest.models.errors import (
    ErrorKind,
    InvalidProviderResponseError,
    MissingCredentialsError,
    PayloadTooLargeError,
    ProviderConfigError,
)
from imageharvest.models.requests import GenerationOptions
from imageharvest.models.responses import GenerationFailure, GenerationResult, create_error_result
from imageharvest.services.retry_service import (
    RetryOptions,
    get_error_code,
    get_status_code,
    is_retryable_error,
)
from imageharvest.utils.credentials import assert_credentials
from imageharvest.utils.http import create_http_client
from imageharvest.utils.security import mask_sensitive_headers, truncate_error_message

logger = logging.getLogger(__name__)

TIMEOUT_CODES = frozenset({"ECONNABORTED", "ETIMEDOUT"})
CONNECTION_CODES = frozenset({"ENOTFOUND", "ECONNREFUSED", "ECONNRESET"})


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol every image generation provider implements."""

    name: str

    async def generate_image(
        self,
        prompt: str,
        guidance: Optional[float] = None,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        *,
        endpoint: Optional[str] = None,
    ) -> GenerationResult:
        """
        Generate one image from a prompt.

        Args:
            prompt: Text prompt for image generation
            guidance: Classifier-free guidance (ignored by vendors without one)
            model: Vendor model identifier (provider default when None)
            user_id: Caller's user id, forwarded where the vendor supports it
            options: Per-call options (size, quality, signal, ...)
            endpoint: Vendor endpoint URL for providers configured per model

        Returns:
            GenerationSuccess or GenerationFailure; never raises
        """
        ...

    async def test_availability(self, model: Optional[str] = None) -> bool:
        """Return True if the vendor answers with the configured credentials."""
        ...

    async def get_available_models(self) -> list[dict[str, Any]]:
        """Return the models this provider can serve."""
        ...

    def get_metadata(self) -> dict[str, Any]:
        """Return static capabilities of the provider."""
        ...


class BaseProvider(ABC):
    """Shared plumbing for providers: credentials, timing and error mapping."""

    name: str = ""
    display_name: str = ""
    default_model: Optional[str] = None
    default_max_attempts: int = 2
    supports_size: bool = False
    supports_quality: bool = False
    supports_cancellation: bool = True

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        model_registry: ModelRegistry | None = None,
        retry_options: RetryOptions | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize provider.

        Args:
            settings: Credential settings (defaults to environment-backed settings)
            model_registry: Optional registry used for model listings
            retry_options: Base retry configuration; attempts are set per call
            http_client: Shared AsyncClient (a private one is created lazily if None)
        """
        self.settings = settings or get_settings()
        self.model_registry = model_registry
        self.retry_options = retry_options or RetryOptions()
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = create_http_client()
        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def assert_credentials(self) -> None:
        assert_credentials(self.name, self.settings)

    def retry_options_for(self, options: GenerationOptions, default_attempts: int | None = None) -> RetryOptions:
        """Base retry options with the attempt count for this call."""
        attempts = options.max_attempts or default_attempts or self.default_max_attempts
        return self.retry_options.model_copy(update={"max_attempts": attempts})

    @staticmethod
    def elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        guidance: Optional[float] = None,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        *,
        endpoint: Optional[str] = None,
    ) -> GenerationResult:
        ...

    async def test_availability(self, model: Optional[str] = None) -> bool:
        """Default availability check: credentials are configured."""
        try:
            self.assert_credentials()
        except ValueError:
            return False
        return True

    async def get_available_models(self) -> list[dict[str, Any]]:
        """List this provider's models from the registry, if one is wired in."""
        if self.model_registry is None:
            return [{"name": self.default_model, "model": self.default_model}] if self.default_model else []

        records = await self.model_registry.get_models_by_provider(self.name)
        return [{"name": record.name, "model": record.api_model} for record in records]

    def get_metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "default_model": self.default_model,
            "default_max_attempts": self.default_max_attempts,
            "supports_size": self.supports_size,
            "supports_quality": self.supports_quality,
            "supports_cancellation": self.supports_cancellation,
        }

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    def error_details(self, error: BaseException) -> Optional[str]:
        """Vendor-specific detail text extracted from an error response."""
        return None

    def is_content_policy_violation(self, error: BaseException, details: Optional[str]) -> bool:
        """Whether a 400 response is a safety-system rejection."""
        text = f"{details or ''} {error}".lower()
        return "content_policy" in text or "content policy" in text or "safety" in text

    def log_error(self, error: BaseException) -> None:
        logger.error(
            f"❌ [{type(self).__name__}] Error in generate_image: {truncate_error_message(str(error))}"
        )

    def handle_error(self, error: BaseException, meta: dict[str, Any]) -> GenerationFailure:
        """
        Map any failure from a generation attempt onto the fixed error taxonomy.

        Sensitive request headers are masked before anything is logged.
        """
        mask_sensitive_headers(error)
        self.log_error(error)
        label = self.display_name or self.name

        if isinstance(error, MissingCredentialsError):
            return create_error_result(
                ErrorKind.MISSING_CREDENTIALS,
                str(error),
                details=error.details,
                retryable=False,
                meta=meta,
            )

        if isinstance(error, ProviderConfigError):
            return create_error_result(
                ErrorKind.INVALID_PARAMS,
                f"Invalid provider config: {str(error)}",
                retryable=False,
                meta=meta,
            )

        if isinstance(error, PayloadTooLargeError):
            return create_error_result(
                ErrorKind.INVALID_RESPONSE,
                "Response payload too large",
                details=str(error),
                retryable=False,
                meta=meta,
            )

        if isinstance(error, InvalidProviderResponseError):
            return create_error_result(
                ErrorKind.INVALID_RESPONSE,
                f"Invalid response from {label} API",
                details=str(error),
                retryable=False,
                meta=meta,
            )

        status = get_status_code(error)
        if status is not None:
            details = self.error_details(error)

            if status == 400:
                if self.is_content_policy_violation(error, details):
                    return create_error_result(
                        ErrorKind.CONTENT_POLICY,
                        "Content policy violation",
                        details="Prompt rejected by safety system",
                        retryable=False,
                        meta=meta,
                    )
                return create_error_result(
                    ErrorKind.INVALID_PARAMS,
                    f"Invalid request to {label} API",
                    details=details or "Bad request parameters",
                    retryable=False,
                    meta=meta,
                )

            if status == 401:
                return create_error_result(
                    ErrorKind.AUTH_FAILED,
                    f"{label} API authentication failed",
                    details=details or "Invalid API key",
                    retryable=False,
                    meta=meta,
                )

            if status == 403:
                return create_error_result(
                    ErrorKind.AUTH_FAILED,
                    f"{label} API access forbidden",
                    details=details or "Check API key permissions",
                    retryable=False,
                    meta=meta,
                )

            if status == 404:
                return create_error_result(
                    ErrorKind.PROVIDER_UNAVAILABLE,
                    f"{label} model or endpoint not found",
                    details=details,
                    retryable=False,
                    meta=meta,
                )

            if status == 429:
                return create_error_result(
                    ErrorKind.RATE_LIMIT,
                    f"{label} API rate limit exceeded",
                    details=details,
                    retryable=True,
                    meta=meta,
                )

            if status == 499:
                return create_error_result(
                    ErrorKind.TIMEOUT,
                    f"{label} API client disconnected",
                    details="Request cancelled or timeout",
                    retryable=True,
                    meta=meta,
                )

            if status >= 500:
                return create_error_result(
                    ErrorKind.SERVER_ERROR,
                    f"{label} API server error",
                    details=details or f"Status {status}",
                    retryable=True,
                    meta=meta,
                )

        code = get_error_code(error)
        if code in TIMEOUT_CODES:
            return create_error_result(
                ErrorKind.TIMEOUT,
                f"{label} API request timeout",
                details=str(error) or None,
                retryable=True,
                meta=meta,
            )

        if code in CONNECTION_CODES:
            return create_error_result(
                ErrorKind.NETWORK_ERROR,
                f"{label} API connection failed",
                details=str(error) or None,
                retryable=True,
                meta=meta,
            )

        return create_error_result(
            ErrorKind.UNKNOWN,
            f"Error generating image with {label}",
            details=str(error) or type(error).__name__,
            retryable=is_retryable_error(error),
            meta=meta,
        )
