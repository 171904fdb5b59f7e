"""Dezgo image generation provider (Flux, SDXL, SD 1/2 endpoints)."""

import logging
import time
from typing import Any, Optional

import httpx

from imageharvest.models.errors import InvalidProviderResponseError, ProviderConfigError
from imageharvest.models.requests import GenerationOptions
from imageharvest.models.responses import GenerationResult, create_success_result, generate_request_id
from imageharvest.providers.base import BaseProvider
from imageharvest.services.retry_service import with_retry
from imageharvest.utils.http import USER_AGENT, post_with_abort
from imageharvest.utils.model_features import (
    compute_dezgo_guidance,
    generate_random_nine_digit_number,
    is_flux_model,
    is_lightning_model,
    is_redshift_model,
    is_sdxl_model,
)
from imageharvest.utils.security import binary_to_base64, get_safe_error_data, truncate_error_message
from imageharvest.utils.validation import validate_base64_size, validate_payload_size

logger = logging.getLogger(__name__)

FLUX_TIMEOUT = 120.0
STANDARD_TIMEOUT = 300.0
REDSHIFT_TIMEOUT = 600.0
AVAILABILITY_TIMEOUT = 30.0


def _flux_form_fields(prompt: str) -> dict[str, tuple[None, str]]:
    """Multipart fields for Flux endpoints (sent as non-file parts)."""
    fields = {
        "prompt": prompt,
        "width": "1024",
        "height": "1024",
        "steps": "4",
        "seed": "",
        "format": "png",
        "transparent_background": "false",
        "lora1": "",
        "lora1_strength": "0.7",
        "lora2": "",
        "lora2_strength": "0.7",
    }
    return {key: (None, value) for key, value in fields.items()}


def _availability_params(url: str, model: str) -> dict[str, Any]:
    """Minimal test request parameters for a model family."""
    if is_lightning_model(url, model):
        size, steps, guidance = 1024, 4, 1
    elif is_sdxl_model(url):
        size, steps, guidance = 1024, 20, 7.5
    else:
        size, steps, guidance = 512, 20, 7.5

    return {
        "prompt": "test",
        "model": model,
        "width": size,
        "height": size,
        "steps": steps,
        "guidance": guidance,
        "seed": 1,
        "output_format": "jpeg",
    }


class DezgoProvider(BaseProvider):
    """Image provider using the Dezgo text2image APIs."""

    name = "dezgo"
    display_name = "Dezgo"
    default_model = "flux_1_schnell"

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"X-Dezgo-Key": self.settings.dezgo_api_key or "", "User-Agent": USER_AGENT, **extra}

    @staticmethod
    def max_attempts_for(model: str) -> int:
        """Slow redshift and abyss models get one extra attempt."""
        return 3 if is_redshift_model(model) or "abyss" in model.lower() else 2

    async def _request(
        self,
        url: Optional[str],
        prompt: str,
        model: str,
        guidance: Optional[float],
        options: GenerationOptions,
    ) -> httpx.Response:
        if not url:
            raise ProviderConfigError("Dezgo API URL is required but not configured")

        if is_flux_model(url):
            response = await post_with_abort(
                self.http_client,
                url,
                signal=options.signal,
                files=_flux_form_fields(prompt),
                headers=self._headers(Accept="image/*"),
                timeout=options.timeout or FLUX_TIMEOUT,
            )
        else:
            params = {
                "prompt": prompt,
                "negative_prompt": "",
                "seed": generate_random_nine_digit_number(),
                "model": model,
                "guidance": compute_dezgo_guidance(url, model, guidance),
            }
            timeout = REDSHIFT_TIMEOUT if is_redshift_model(model) else STANDARD_TIMEOUT
            response = await post_with_abort(
                self.http_client,
                url,
                signal=options.signal,
                data=params,
                headers=self._headers(Accept="image/*"),
                timeout=options.timeout or timeout,
            )

        response.raise_for_status()
        validate_payload_size(response.content)
        return response

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
        Generate an image with Dezgo.

        Flux endpoints take a multipart form; every other endpoint takes a
        URL-encoded form with a model-family guidance and a random seed.
        ``user_id``, ``size`` and ``quality`` are not used by Dezgo.
        """
        options = options or GenerationOptions()
        model = model or self.default_model
        start_time = time.monotonic()
        request_id = generate_request_id()

        try:
            self.assert_credentials()

            async def _attempt(_attempt_number: int) -> str:
                response = await self._request(endpoint, prompt, model, guidance, options)
                if not response.content:
                    raise InvalidProviderResponseError("Invalid response from Dezgo API - no data")

                image_base64 = binary_to_base64(response.content)
                validate_base64_size(image_base64)
                return image_base64

            image_base64 = await with_retry(
                _attempt,
                self.retry_options_for(options, self.max_attempts_for(model)),
            )

            return create_success_result(image_base64, {
                "request_id": request_id,
                "provider": self.name,
                "model": model,
                "endpoint": endpoint,
                "duration_ms": self.elapsed_ms(start_time),
            })

        except Exception as e:
            return self.handle_error(e, {
                "request_id": request_id,
                "provider": self.name,
                "model": model,
                "endpoint": endpoint,
                "duration_ms": self.elapsed_ms(start_time),
            })

    def error_details(self, error: BaseException) -> Optional[str]:
        response = getattr(error, "response", None)
        if not isinstance(response, httpx.Response):
            return None

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("image/"):
            return get_safe_error_data(response.content)
        return get_safe_error_data(response.text)

    def log_error(self, error: BaseException) -> None:
        response = getattr(error, "response", None)
        logger.error(
            f"❌ [DezgoProvider] Error details: status={getattr(response, 'status_code', None)} "
            f"data={self.error_details(error) or 'No data'} message={truncate_error_message(str(error))}"
        )

    async def test_model_availability(self, model: str) -> bool:
        """Send a minimal synchronous test request for a registered Dezgo model."""
        try:
            self.assert_credentials()

            if self.model_registry is None:
                return False

            records = await self.model_registry.get_models_by_provider(self.name)
            record = next((r for r in records if r.api_model == model), None)
            if record is None or not record.api_url:
                return False

            url = record.api_url
            if is_flux_model(url):
                response = await self.http_client.post(
                    url,
                    files=_flux_form_fields("test"),
                    headers=self._headers(Accept="*/*"),
                    timeout=AVAILABILITY_TIMEOUT,
                )
            else:
                response = await self.http_client.post(
                    url,
                    json=_availability_params(url, model),
                    headers=self._headers(),
                    timeout=AVAILABILITY_TIMEOUT,
                )

            return response.status_code == 200
        except Exception as e:
            logger.warning(f"⚠️ [DezgoProvider] Availability test for {model} failed: {truncate_error_message(str(e))}")
            return False

    async def test_availability(self, model: Optional[str] = None) -> bool:
        if model:
            return await self.test_model_availability(model)
        return await super().test_availability()
