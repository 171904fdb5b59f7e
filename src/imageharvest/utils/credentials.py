"""Per-provider credential precondition checks."""

from typing import Callable

from imageharvest.config import ProviderSettings, get_settings
from imageharvest.models.errors import MissingCredentialsError
from imageharvest.models.requests import ProviderType


def _check_openai(settings: ProviderSettings) -> None:
    if not settings.openai_api_key:
        raise MissingCredentialsError("OpenAI API key not configured")


def _check_dezgo(settings: ProviderSettings) -> None:
    if not settings.dezgo_api_key:
        raise MissingCredentialsError("Dezgo API key not configured")


def _check_google(settings: ProviderSettings) -> None:
    if not settings.google_cloud_project_id:
        raise MissingCredentialsError("GOOGLE_CLOUD_PROJECT_ID not configured")
    if not settings.google_application_credentials and not settings.google_cloud_api_key:
        raise MissingCredentialsError("Google Cloud credentials not configured")


def _check_grok(settings: ProviderSettings) -> None:
    if not settings.grok_api_key:
        raise MissingCredentialsError("Grok API key not configured")


CREDENTIAL_CHECKS: dict[str, Callable[[ProviderSettings], None]] = {
    ProviderType.OPENAI.value: _check_openai,
    ProviderType.DEZGO.value: _check_dezgo,
    ProviderType.GOOGLE.value: _check_google,
    ProviderType.GROK.value: _check_grok,
}


def assert_credentials(provider_type: str, settings: ProviderSettings | None = None) -> None:
    """
    Verify that the configuration values a provider needs are present.

    Args:
        provider_type: Provider type (openai, dezgo, google, grok)
        settings: Settings to check (defaults to the process-wide settings)

    Raises:
        MissingCredentialsError: If a required value is absent
        ValueError: If the provider type is unknown
    """
    check = CREDENTIAL_CHECKS.get(provider_type)
    if check is None:
        raise ValueError(f"Unknown provider type: {provider_type}")

    check(settings or get_settings())
