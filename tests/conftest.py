"""Shared pytest fixtures for ImageHarvest tests."""

from typing import Callable

import httpx
import pytest

from imageharvest.config import ProviderSettings
from imageharvest.services.model_registry import StaticModelRegistry
from imageharvest.services.retry_service import RetryOptions

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"


@pytest.fixture
def settings():
    """Settings with every provider configured."""
    return ProviderSettings(
        _env_file=None,
        openai_api_key="sk-test",
        dezgo_api_key="dezgo-test",
        google_cloud_project_id="test-project",
        google_application_credentials='{"type": "service_account"}',
        google_cloud_api_key=None,
        google_cloud_location="us-central1",
        grok_api_key="xai-test",
        grok_api_url="https://api.x.ai/v1",
    )


@pytest.fixture
def empty_settings():
    """Settings with no credentials at all, regardless of the environment."""
    return ProviderSettings(
        _env_file=None,
        openai_api_key=None,
        dezgo_api_key=None,
        google_cloud_project_id=None,
        google_application_credentials=None,
        google_cloud_api_key=None,
        grok_api_key=None,
    )


@pytest.fixture
def fast_retry():
    """Retry options without backoff sleeps."""
    return RetryOptions(base_delay=0)


@pytest.fixture
def registry():
    return StaticModelRegistry()


class RecordingTransport:
    """Builds an httpx client whose requests are answered by a handler and recorded."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))


def sequence_handler(*responses: Callable[[httpx.Request], httpx.Response]):
    """Handler replaying response factories in order (the last one repeats)."""
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        factory = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return factory(request)

    return handler


def respond(status_code: int, **kwargs) -> Callable[[httpx.Request], httpx.Response]:
    """Response factory for sequence_handler."""
    return lambda request: httpx.Response(status_code, **kwargs)


@pytest.fixture
def recording_transport():
    """Factory fixture: recording_transport(handler) -> RecordingTransport."""
    return RecordingTransport
