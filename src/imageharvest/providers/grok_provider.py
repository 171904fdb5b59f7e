"""Grok (xAI) image generation provider."""

import logging
import time
from typing import Any, Optional

from imageharvest.models.errors import InvalidProviderResponseError
from imageharvest.models.requests import GenerationOptions
from imageharvest.models.responses import GenerationResult, create_success_result, generate_request_id
from imageharvest.providers.base import BaseProvider
from imageharvest.services.retry_service import with_retry
from imageharvest.utils.http import get_with_abort, post_with_abort
from imageharvest.utils.security import truncate_error_message
from imageharvest.utils.validation import validate_base64_size

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 120.0
MODELS_TIMEOUT = 10.0


class GrokProvider(BaseProvider):
    """Image provider using the xAI ``images/generations`` API.

    Grok does not accept size, style or quality parameters.
    """

    name = "grok"
    display_name = "Grok"
    default_model = "grok-2-image"

    @property
    def base_url(self) -> str:
        return self.settings.grok_api_url.rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.grok_api_key}"}

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
        Generate an image with Grok.

        Args:
            prompt: Text prompt for image generation
            guidance: Unused by Grok
            model: Grok model (defaults to grok-2-image)
            user_id: Unused by Grok
            options: n, response_format, timeout and signal are honoured

        Returns:
            GenerationResult with the base64 image on success
        """
        options = options or GenerationOptions()
        model = model or self.default_model
        start_time = time.monotonic()
        request_id = generate_request_id()

        try:
            self.assert_credentials()

            request_data = {
                "prompt": prompt,
                "model": model,
                "n": options.n or 1,
                "response_format": options.response_format or "b64_json",
            }

            async def _attempt(_attempt_number: int) -> str:
                response = await post_with_abort(
                    self.http_client,
                    f"{self.base_url}/images/generations",
                    signal=options.signal,
                    json=request_data,
                    headers={**self._auth_headers(), "Content-Type": "application/json"},
                    timeout=options.timeout or REQUEST_TIMEOUT,
                )
                response.raise_for_status()

                images = response.json().get("data") or [{}]
                image_base64 = images[0].get("b64_json") or images[0].get("image")
                if not image_base64:
                    raise InvalidProviderResponseError("Invalid response from Grok API - no image data found")

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
        response = getattr(error, "response", None)
        if response is None:
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        message = data.get("error") or data.get("message")
        if isinstance(message, dict):
            message = message.get("message")
        return truncate_error_message(str(message)) if message else None

    async def _list_models(self) -> list[dict[str, Any]]:
        response = await get_with_abort(
            self.http_client,
            f"{self.base_url}/models",
            headers=self._auth_headers(),
            timeout=MODELS_TIMEOUT,
        )
        response.raise_for_status()
        return response.json().get("data") or []

    async def test_availability(self, model: Optional[str] = None) -> bool:
        try:
            self.assert_credentials()
            await self._list_models()
            return True
        except Exception as e:
            logger.warning(f"⚠️ [GrokProvider] Availability test failed: {truncate_error_message(str(e))}")
            return False

    async def get_available_models(self) -> list[dict[str, Any]]:
        """Models from ``GET /models`` that advertise image generation."""
        try:
            self.assert_credentials()
            models = await self._list_models()
        except Exception as e:
            logger.error(f"❌ [GrokProvider] Failed to fetch models: {truncate_error_message(str(e))}")
            return []

        return [
            {"id": m["id"], "name": m.get("name") or m["id"], "type": "image"}
            for m in models
            if isinstance(m, dict) and m.get("id") and "image_generation" in (m.get("capabilities") or [])
        ]
