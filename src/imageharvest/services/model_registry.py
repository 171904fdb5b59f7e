"""Static model catalog implementing the ModelRegistry protocol.

Serves as the fallback configuration when no database-backed registry is
wired in, and as a fixture source for tests.
"""

from typing import Iterable, Optional

from imageharvest.models.requests import ModelRecord, ProviderConfig

DEZGO_TEXT2IMAGE = "https://api.dezgo.com/text2image"
DEZGO_SDXL = "https://api.dezgo.com/text2image_sdxl"
DEZGO_SDXL_LIGHTNING = "https://api.dezgo.com/text2image_sdxl_lightning"
DEZGO_FLUX = "https://api.dezgo.com/text2image_flux"

STATIC_MODELS: tuple[ModelRecord, ...] = (
    # OpenAI
    ModelRecord(name="dalle", provider="openai", display_name="DALL-E 3",
                api_model="dall-e-3", api_size="1024x1024"),
    ModelRecord(name="dalle3", provider="openai", display_name="DALL-E 3",
                api_model="dall-e-3", api_size="1024x1024"),
    ModelRecord(name="dalle2", provider="openai", display_name="DALL-E 2",
                api_model="dall-e-2", api_size="1024x1024"),
    # Dezgo - Flux
    ModelRecord(name="flux", provider="dezgo", display_name="Flux",
                api_url=DEZGO_FLUX, api_model="flux_1_schnell", api_size="1024x1024"),
    # Dezgo - SDXL
    ModelRecord(name="juggernaut", provider="dezgo", display_name="Juggernaut XL",
                api_url=DEZGO_SDXL, api_model="juggernautxl_1024px", api_size="1024x1024"),
    ModelRecord(name="dreamshaper", provider="dezgo", display_name="Dreamshaper XL",
                api_url=DEZGO_SDXL, api_model="dreamshaperxl_1024px", api_size="1024x1024"),
    ModelRecord(name="dreamshaperLighting", provider="dezgo", display_name="Dreamshaper Lightning",
                api_url=DEZGO_SDXL_LIGHTNING, api_model="dreamshaperxl_lightning_1024px", api_size="1024x1024"),
    ModelRecord(name="bluepencil", provider="dezgo", display_name="Blue Pencil XL",
                api_url=DEZGO_SDXL, api_model="bluepencilxl_1024px", api_size="1024x1024"),
    # Dezgo - SD 1/2
    ModelRecord(name="juggernautReborn", provider="dezgo", display_name="Juggernaut Reborn",
                api_url=DEZGO_TEXT2IMAGE, api_model="juggernaut_reborn", api_size="1024x1024"),
    ModelRecord(name="absolute", provider="dezgo", display_name="Absolute Reality",
                api_url=DEZGO_TEXT2IMAGE, api_model="absolute_reality_1_8_1", api_size="1024x1024"),
    ModelRecord(name="realisticvision", provider="dezgo", display_name="Realistic Vision",
                api_url=DEZGO_TEXT2IMAGE, api_model="realistic_vision_5_1", api_size="1024x1024"),
    ModelRecord(name="redshift", provider="dezgo", display_name="Redshift Diffusion",
                api_url=DEZGO_TEXT2IMAGE, api_model="redshift_diffusion_768px", api_size="768x768"),
    ModelRecord(name="abyssorange", provider="dezgo", display_name="Abyss Orange Mix",
                api_url=DEZGO_TEXT2IMAGE, api_model="abyss_orange_mix_2", api_size="1024x1024"),
    ModelRecord(name="openjourney", provider="dezgo", display_name="Openjourney",
                api_url=DEZGO_TEXT2IMAGE, api_model="openjourney_2", api_size="1024x1024"),
    # Google
    ModelRecord(name="nanoBanana", provider="google", display_name="Google Imagen 3",
                api_model="imagen-3.0-generate-001", api_size="1024x1024"),
    # Grok / xAI
    ModelRecord(name="grok", provider="grok", display_name="Grok 2 Image",
                api_model="grok-2-image"),
)


class StaticModelRegistry:
    """In-memory model registry."""

    def __init__(self, models: Iterable[ModelRecord] | None = None):
        records = STATIC_MODELS if models is None else tuple(models)
        self._models: dict[str, ModelRecord] = {record.name: record for record in records}

    async def get_model(self, model_name: str) -> Optional[ModelRecord]:
        return self._models.get(model_name)

    async def get_all_models(self) -> list[ModelRecord]:
        return list(self._models.values())

    async def get_models_by_provider(self, provider: str) -> list[ModelRecord]:
        return [record for record in self._models.values() if record.provider == provider]

    async def get_valid_model_names(self) -> list[str]:
        return [name for name, record in self._models.items() if record.is_active]

    async def is_model_valid(self, model_name: str) -> bool:
        record = self._models.get(model_name)
        return bool(record and record.is_active)

    async def get_image_generator_config(self, model_name: str) -> Optional[ProviderConfig]:
        record = self._models.get(model_name)
        if record is None or not record.is_active:
            return None
        return record.to_provider_config()
