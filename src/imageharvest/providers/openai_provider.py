"""OpenAI image generation provider."""

import logging
import time
from typing import Any, Optional

from openai import AsyncOpenAI

from imageharvest.models.errors import InvalidProviderResponseError
from imageharvest.models.requests import GenerationOptions
from imageharvest.models.responses import GenerationResult, create_success_result, generate_request_id
from imageharvest.providers.base import BaseProvider
from imageharvest.services.retry_service import with_retry
from imageharvest.utils.security import truncate_error_message
from imageharvest.utils.validation import validate_base64_size

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "1024x1024"
DEFAULT_QUALITY = "standard"
REQUEST_TIMEOUT = 120.0


class OpenAIImageProvider(BaseProvider):
    """Image provider using the OpenAI Images API.

    The SDK call cannot be cancelled once sent, so ``options.signal`` has no
    effect here.
    """

    name = "openai"
    display_name = "DALL-E"
    default_model = "dall-e-3"
    supports_size = True
    supports_quality = True
    supports_cancellation = False

    def __init__(self, *args: Any, openai_client: AsyncOpenAI | None = None, **kwargs: Any):
        """
        Initialize OpenAI provider.

        Args:
            openai_client: Preconfigured AsyncOpenAI client (built from settings if None)
            *args, **kwargs: Forwarded to BaseProvider
        """
        super().__init__(*args, **kwargs)
        self._client = openai_client
        self._owns_client = openai_client is None

    @property
    def client(self) -> AsyncOpenAI:
        # Retries are handled by with_retry, not the SDK
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=REQUEST_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
        await super().aclose()

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
        Generate an image using the OpenAI Images API.

        Args:
            prompt: Text prompt for image generation
            guidance: Unused by OpenAI
            model: OpenAI model (defaults to dall-e-3)
            user_id: Forwarded as the ``user`` field when given
            options: size (default 1024x1024) and quality (default standard)

        Returns:
            GenerationResult with the base64 image on success
        """
        options = options or GenerationOptions()
        model = model or self.default_model
        start_time = time.monotonic()
        request_id = generate_request_id()

        try:
            self.assert_credentials()

            params: dict[str, Any] = {
                "prompt": prompt,
                "n": 1,
                "size": options.size or DEFAULT_SIZE,
                "response_format": "b64_json",
                "model": model,
                "quality": options.quality or DEFAULT_QUALITY,
            }
            if user_id:
                params["user"] = str(user_id)

            async def _attempt(_attempt_number: int) -> str:
                response = await self.client.images.generate(**params)

                image_base64 = response.data[0].b64_json if response.data else None
                if not image_base64:
                    raise InvalidProviderResponseError("No image data in OpenAI response")

                validate_base64_size(image_base64)
                return image_base64

            image_base64 = await with_retry(_attempt, self.retry_options_for(options))

            return create_success_result(image_base64, {
                "request_id": request_id,
                "provider": self.name,
                "model": model,
                "duration_ms": self.elapsed_ms(start_time),
            })

        except Exception as e:
            return self.handle_error(e, {
                "request_id": request_id,
                "provider": self.name,
                "model": model,
                "duration_ms": self.elapsed_ms(start_time),
            })

    def error_details(self, error: BaseException) -> Optional[str]:
        message = getattr(error, "message", None)
        return truncate_error_message(message) if isinstance(message, str) and message else None

    def is_content_policy_violation(self, error: BaseException, details: Optional[str]) -> bool:
        if getattr(error, "code", None) == "content_policy_violation":
            return True
        return super().is_content_policy_violation(error, details)

    async def test_availability(self, model: Optional[str] = None) -> bool:
        """Check the API key by listing models."""
        try:
            self.assert_credentials()
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"⚠️ [OpenAIProvider] Availability check failed: {truncate_error_message(str(e))}")
            return False
