"""
Provider credential configuration.

All values are loaded from environment variables (or a local .env file) once
and injected into providers, so nothing reads os.environ ad hoc.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

GROK_API_BASE_URL = "https://api.x.ai/v1"


class ProviderSettings(BaseSettings):
    """Credentials and endpoints for the image generation vendors."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ===========================================
    # OPENAI (Provider: openai)
    # ===========================================
    openai_api_key: Optional[str] = None

    # ===========================================
    # DEZGO (Provider: dezgo)
    # ===========================================
    dezgo_api_key: Optional[str] = None

    # ===========================================
    # GOOGLE VERTEX AI IMAGEN (Provider: google)
    # ===========================================
    google_cloud_project_id: Optional[str] = None
    # Service-account JSON content or a path to the key file
    google_application_credentials: Optional[str] = None
    google_cloud_api_key: Optional[str] = None
    google_cloud_location: str = "us-central1"

    # ===========================================
    # GROK / xAI (Provider: grok)
    # ===========================================
    grok_api_key: Optional[str] = None
    grok_api_url: str = GROK_API_BASE_URL


@lru_cache
def get_settings() -> ProviderSettings:
    """Return the process-wide settings instance."""
    return ProviderSettings()
