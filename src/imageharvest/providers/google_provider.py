"""Google Imagen provider (Vertex AI ``imagegeneration:predict``)."""

import asyncio
import json
import logging
import os
import time
from typing import Any, Awaitable, Callable, Optional

import google.auth.transport.requests
from google.oauth2 import service_account

from imageharvest.models.errors import InvalidProviderResponseError, MissingCredentialsError
from imageharvest.models.requests import GenerationOptions
from imageharvest.models.responses import GenerationResult, create_success_result, generate_request_id
from imageharvest.providers.base import BaseProvider
from imageharvest.services.retry_service import with_retry
from imageharvest.utils.http import post_with_abort
from imageharvest.utils.security import truncate_error_message
from imageharvest.utils.validation import validate_base64_size

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
TOKEN_TTL_SECONDS = 50 * 60  # tokens are valid for one hour
REQUEST_TIMEOUT = 120.0
DEFAULT_SIZE = "1024x1024"
SERVERLESS_TIP = (
    "File not found. Tip: For serverless/cloud deployments, use JSON credentials string "
    "in GOOGLE_APPLICATION_CREDENTIALS env var instead of a file path."
)


class TokenCache:
    """Single-slot access token cache checked against wall-clock time."""

    def __init__(self, ttl_seconds: float = TOKEN_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.token: Optional[str] = None
        self.expires_at: float = 0.0

    def get(self) -> Optional[str]:
        if self.token and self._clock() < self.expires_at:
            return self.token
        return None

    def set(self, token: str) -> None:
        self.token = token
        self.expires_at = self._clock() + self.ttl_seconds

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0

    async def get_or_refresh(self, fetch: Callable[[], Awaitable[str]]) -> str:
        """Return the cached token, fetching and storing a new one on a miss."""
        token = self.get()
        if token is not None:
            return token

        token = await fetch()
        self.set(token)
        return token


def load_service_account_credentials(value: str) -> service_account.Credentials:
    """
    Build service-account credentials from GOOGLE_APPLICATION_CREDENTIALS.

    The value is either the key JSON itself (escaped ``\\n`` sequences are
    restored) or a path to the key file.

    Raises:
        MissingCredentialsError: If the value is a path that does not exist
    """
    if value.lstrip().startswith("{"):
        info = json.loads(value.replace("\\n", "\n"))
        return service_account.Credentials.from_service_account_info(info, scopes=[CLOUD_PLATFORM_SCOPE])

    if not os.path.exists(value):
        raise MissingCredentialsError(
            f"GOOGLE_APPLICATION_CREDENTIALS file not found: {value}. "
            "Ensure the file exists or use JSON credentials string.",
            details=SERVERLESS_TIP,
        )

    return service_account.Credentials.from_service_account_file(value, scopes=[CLOUD_PLATFORM_SCOPE])


class GoogleImagenProvider(BaseProvider):
    """Image provider using Google Imagen on Vertex AI."""

    name = "google"
    display_name = "Imagen"
    default_model = "imagen"
    supports_size = True

    def __init__(
        self,
        *args: Any,
        token_cache: TokenCache | None = None,
        token_fetcher: Callable[[], Awaitable[str]] | None = None,
        **kwargs: Any,
    ):
        """
        Initialize Google Imagen provider.

        Args:
            token_cache: Access token cache (one per provider instance if None)
            token_fetcher: Coroutine returning a fresh access token
                (service-account JWT flow via google-auth if None)
            *args, **kwargs: Forwarded to BaseProvider
        """
        super().__init__(*args, **kwargs)
        self.token_cache = token_cache or TokenCache()
        self._token_fetcher = token_fetcher or self._fetch_access_token
        self._credentials: Optional[service_account.Credentials] = None

    def _service_account_credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            value = self.settings.google_application_credentials
            if not value:
                raise MissingCredentialsError(
                    "Google Cloud service account credentials required for Imagen "
                    "(API key authentication is not supported)"
                )
            self._credentials = load_service_account_credentials(value)
        return self._credentials

    async def _fetch_access_token(self) -> str:
        credentials = self._service_account_credentials()
        # google-auth refreshes synchronously over requests
        await asyncio.to_thread(credentials.refresh, google.auth.transport.requests.Request())
        return credentials.token

    async def get_access_token(self) -> str:
        return await self.token_cache.get_or_refresh(self._token_fetcher)

    @property
    def endpoint(self) -> str:
        location = self.settings.google_cloud_location
        project_id = self.settings.google_cloud_project_id
        return (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project_id}"
            f"/locations/{location}/publishers/google/models/imagegeneration:predict"
        )

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
        """Generate an image with Imagen. Only ``options.size`` is used."""
        options = options or GenerationOptions()
        start_time = time.monotonic()
        request_id = generate_request_id()
        meta = {"request_id": request_id, "provider": self.name, "model": self.default_model}

        try:
            self.assert_credentials()

            request_data = {
                "instances": [{"prompt": prompt}],
                "parameters": {
                    "sampleCount": 1,
                    "imageSize": options.size or DEFAULT_SIZE,
                },
            }

            async def _attempt(_attempt_number: int) -> str:
                token = await self.get_access_token()
                response = await post_with_abort(
                    self.http_client,
                    self.endpoint,
                    signal=options.signal,
                    json=request_data,
                    headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                    timeout=options.timeout or REQUEST_TIMEOUT,
                )
                response.raise_for_status()

                predictions = response.json().get("predictions") or [{}]
                image_base64 = predictions[0].get("bytesBase64Encoded")
                if not image_base64:
                    raise InvalidProviderResponseError("Invalid response from Imagen API")

                validate_base64_size(image_base64)
                return image_base64

            image_base64 = await with_retry(_attempt, self.retry_options_for(options))

            return create_success_result(image_base64, {**meta, "duration_ms": self.elapsed_ms(start_time)})

        except Exception as e:
            return self.handle_error(e, {**meta, "duration_ms": self.elapsed_ms(start_time)})

    def error_details(self, error: BaseException) -> Optional[str]:
        response = getattr(error, "response", None)
        if response is None:
            return None
        try:
            message = response.json().get("error", {}).get("message")
        except (ValueError, AttributeError):
            return None
        return truncate_error_message(message) if message else None

    async def test_availability(self, model: Optional[str] = None) -> bool:
        """Available when credentials are configured and a token can be obtained."""
        try:
            self.assert_credentials()
            await self.get_access_token()
            return True
        except Exception as e:
            logger.warning(f"⚠️ [GoogleImagenProvider] Availability check failed: {truncate_error_message(str(e))}")
            return False
