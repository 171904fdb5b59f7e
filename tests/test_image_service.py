"""Tests for the ImageGenerator orchestrator."""

import asyncio

import pytest

from conftest import FAKE_PNG, respond
from imageharvest.models.errors import ErrorKind
from imageharvest.models.requests import GenerationOptions, ModelRecord
from imageharvest.models.responses import create_success_result
from imageharvest.providers.base import BaseProvider
from imageharvest.providers.factory import ProviderFactory
from imageharvest.services.image_service import ImageGenerator, batch_process
from imageharvest.services.model_registry import DEZGO_FLUX, StaticModelRegistry


class FakeProvider(BaseProvider):
    """Provider that records its calls and echoes the model back as data."""

    name = "fake"
    default_model = "fake-default"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def generate_image(self, prompt, guidance=None, model=None, user_id=None, options=None, *, endpoint=None):
        self.calls.append({
            "prompt": prompt,
            "guidance": guidance,
            "model": model,
            "user_id": user_id,
            "options": options,
            "endpoint": endpoint,
        })
        return create_success_result(f"image-{model}", {"provider": self.name, "model": model})


class SlowProvider(FakeProvider):
    """Sleeps for the number of seconds given as the model name."""

    name = "slow"

    async def generate_image(self, prompt, guidance=None, model=None, user_id=None, options=None, *, endpoint=None):
        await asyncio.sleep(float(model))
        return await super().generate_image(prompt, guidance, model, user_id, options, endpoint=endpoint)


class FailingConfigSource:
    """Config source that resolves once, then fails."""

    def __init__(self, registry):
        self.registry = registry
        self.calls = 0

    async def get_model_config(self, provider_key):
        self.calls += 1
        if self.calls > 1:
            raise RuntimeError("database unavailable")
        return await self.registry.get_image_generator_config(provider_key)


@pytest.fixture
def fake_registry():
    return StaticModelRegistry([
        ModelRecord(name="a", provider="fake", api_model="model-a", api_size="512x512", api_quality="hd"),
        ModelRecord(name="b", provider="fake", api_model="model-b"),
        ModelRecord(name="c", provider="fake", api_model="model-c"),
        ModelRecord(name="p1", provider="fake", api_model="p1"),
        ModelRecord(name="p2", provider="fake", api_model="p2"),
        ModelRecord(name="p3", provider="fake", api_model="p3"),
        ModelRecord(name="nomodel", provider="fake"),
        ModelRecord(name="mystery", provider="mystery", api_model="m"),
        ModelRecord(name="brokendezgo", provider="dezgo", api_model="flux_1_schnell"),
        ModelRecord(name="brokendezgocase", provider="Dezgo", api_model="flux_1_schnell"),
        ModelRecord(name="retired", provider="fake", api_model="retired", is_active=False),
        ModelRecord(name="slow", provider="slow", api_model="0.05"),
        ModelRecord(name="fast", provider="slow", api_model="0"),
    ])


@pytest.fixture
def fake_factory():
    return ProviderFactory({"fake": FakeProvider, "slow": SlowProvider})


def make_generator(fake_registry, fake_factory, settings, **kwargs) -> ImageGenerator:
    return ImageGenerator(registry=fake_registry, factory=fake_factory, settings=settings, **kwargs)


@pytest.mark.asyncio
async def test_dispatches_with_config_defaults(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_provider_image("a", "a castle", 5, "user-1")
        provider = generator.get_provider("fake")

    assert result.success is True
    assert result.data == "image-model-a"

    call = provider.calls[0]
    assert call["prompt"] == "a castle"
    assert call["guidance"] == 5
    assert call["user_id"] == "user-1"
    assert call["model"] == "model-a"
    assert call["options"].size == "512x512"
    assert call["options"].quality == "hd"
    assert call["endpoint"] is None


@pytest.mark.asyncio
async def test_explicit_options_override_config_even_when_falsy(fake_registry, fake_factory, settings):
    """Test per-call values win over config defaults, including empty strings."""
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        await generator.generate_provider_image("a", "a castle", options=GenerationOptions(size="", quality="standard"))
        call = generator.get_provider("fake").calls[0]

    assert call["options"].size == ""
    assert call["options"].quality == "standard"


@pytest.mark.asyncio
async def test_provider_default_model_is_used(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_provider_image("nomodel", "a castle")

    assert result.data == "image-fake-default"


@pytest.mark.asyncio
async def test_unknown_provider_type(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_provider_image("mystery", "a castle")

    assert result.success is False
    assert result.error_code == ErrorKind.INVALID_PARAMS
    assert result.error == "Unknown provider type: mystery"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_key", ["brokendezgo", "brokendezgocase"])
async def test_invalid_provider_config(fake_registry, fake_factory, settings, provider_key):
    """Test a dezgo config without a url is rejected whatever the type's case."""
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_provider_image(provider_key, "a castle")

    assert result.error_code == ErrorKind.INVALID_PARAMS
    assert result.error.startswith("Invalid provider config")
    assert "url" in result.error


@pytest.mark.asyncio
async def test_invalid_parameters_skip_provider(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        empty_prompt = await generator.generate_provider_image("a", "", 7)
        unknown_key = await generator.generate_provider_image("zzz", "a castle")
        provider = generator.get_provider("fake")

    assert empty_prompt.error_code == ErrorKind.INVALID_PARAMS
    assert empty_prompt.error.startswith("Invalid parameters: Invalid prompt")
    assert unknown_key.error_code == ErrorKind.INVALID_PARAMS
    assert "Invalid provider key: zzz" in unknown_key.error
    assert provider.calls == []


@pytest.mark.asyncio
async def test_config_failure_is_unknown(fake_registry, fake_factory, settings):
    config_source = FailingConfigSource(fake_registry)
    generator = make_generator(fake_registry, fake_factory, settings, config_source=config_source)

    async with generator:
        result = await generator.generate_provider_image("a", "a castle")

    assert result.error_code == ErrorKind.UNKNOWN
    assert result.error == "Generation failed: database unavailable"
    assert result.retryable is False


@pytest.mark.asyncio
async def test_multiple_providers_settle_all(fake_registry, fake_factory, settings):
    """Test a provider call that raises outright becomes an UNKNOWN entry in place."""
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        real_generate = generator.generate_provider_image

        async def generate(provider_key, *args, **kwargs):
            if provider_key == "b":
                raise RuntimeError("provider b crashed")
            return await real_generate(provider_key, *args, **kwargs)

        generator.generate_provider_image = generate
        results = await generator.generate_multiple_provider_images(["a", "b", "c"], "a castle", 7.5)

    assert len(results) == 3
    assert results[0].success is True
    assert results[0].data == "image-model-a"
    assert results[1].success is False
    assert results[1].error_code == ErrorKind.UNKNOWN
    assert results[1].error == "provider b crashed"
    assert results[1].meta.provider == "b"
    assert results[1].meta.duration_ms >= 0
    assert results[2].success is True
    assert results[2].data == "image-model-c"


@pytest.mark.asyncio
async def test_multiple_providers_keep_input_order(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings, max_concurrency=2) as generator:
        results = await generator.generate_multiple_provider_images(
            ["slow", "fast", "a", "slow", "zzz", "fast"], "a castle"
        )

    assert [r.data if r.success else r.error_code for r in results] == [
        "image-0.05",
        "image-0",
        "image-model-a",
        "image-0.05",
        ErrorKind.INVALID_PARAMS,
        "image-0",
    ]


@pytest.mark.asyncio
async def test_batch_process_bounds_concurrency():
    in_flight = 0
    peak = 0

    async def work(item, index):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01 * (5 - index))
        in_flight -= 1
        if item == "boom":
            raise ValueError("boom")
        return item * 2

    results = await batch_process(["a", "b", "boom", "d", "e"], work, limit=2)

    assert peak == 2
    assert results[:2] == ["aa", "bb"]
    assert isinstance(results[2], ValueError)
    assert results[3:] == ["dd", "ee"]


@pytest.mark.asyncio
async def test_batch_process_without_limit_runs_everything():
    started = []

    async def work(item, index):
        started.append(item)
        await asyncio.sleep(0)
        return index

    assert await batch_process(["x", "y"], work, limit=5) == [0, 1]
    assert started == ["x", "y"]


@pytest.mark.asyncio
async def test_random_provider_with_empty_list(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_random_provider_image([], "a castle")
        provider = generator.get_provider("fake")

    assert result.success is False
    assert result.error_code == ErrorKind.INVALID_PARAMS
    assert result.meta.model_dump()["provider_count"] == 0
    assert result.meta.request_id
    assert provider.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("seed_arg", [5, 5.0, 5.7, {"seed": 5}, {"seed": 5.0}, GenerationOptions(seed=5)])
async def test_random_provider_with_seed_is_deterministic(fake_registry, fake_factory, settings, seed_arg):
    """Test seed 5 over three providers always selects the third one."""
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        for _ in range(3):
            result = await generator.generate_random_provider_image(["p1", "p2", "p3"], "a castle", 7.5, None, seed_arg)
            assert result.data == "image-p3"


@pytest.mark.asyncio
async def test_random_provider_seed_options_are_forwarded(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        await generator.generate_random_provider_image(["p1", "p2"], "a castle", None, None, {"seed": -3, "size": "256x256"})
        call = generator.get_provider("fake").calls[0]

    assert call["model"] == "p2"
    assert call["options"].size == "256x256"
    assert call["options"].seed is None


@pytest.mark.asyncio
@pytest.mark.parametrize("seed_arg", [
    {"seed": 5, "n": 0},
    {"seed": 5, "timeout": -1},
    {"max_attempts": 0},
    {"seed": "five"},
    {"seed": float("nan")},
    "five",
])
async def test_random_provider_rejects_bad_options(fake_registry, fake_factory, settings, seed_arg):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_random_provider_image(["p1", "p2", "p3"], "a castle", None, None, seed_arg)
        provider = generator.get_provider("fake")

    assert result.success is False
    assert result.error_code == ErrorKind.INVALID_PARAMS
    assert result.retryable is False
    assert result.details
    assert result.meta.model_dump()["provider_count"] == 3
    assert provider.calls == []


@pytest.mark.asyncio
async def test_random_provider_without_seed(monkeypatch, fake_registry, fake_factory, settings):
    monkeypatch.setattr("imageharvest.services.image_service.random.randrange", lambda n: 1)

    async with make_generator(fake_registry, fake_factory, settings) as generator:
        result = await generator.generate_random_provider_image(["p1", "p2", "p3"], "a castle")

    assert result.data == "image-p2"


@pytest.mark.asyncio
async def test_configuration_accessors(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        assert "p1" in await generator.get_available_providers()
        assert "retired" not in await generator.get_available_providers()
        assert await generator.is_provider_available("retired") is False
        assert (await generator.get_provider_config("a")).model == "model-a"
        assert await generator.get_provider_config("zzz") is None
        assert await generator.is_provider_available("a") is True
        assert await generator.is_provider_available("zzz") is False


@pytest.mark.asyncio
async def test_provider_instances_are_reused(fake_registry, fake_factory, settings):
    async with make_generator(fake_registry, fake_factory, settings) as generator:
        assert generator.get_provider("fake") is generator.get_provider("FAKE")
        assert generator.get_provider("fake").settings is settings


@pytest.mark.asyncio
async def test_injected_http_client_is_not_closed(recording_transport, fake_registry, fake_factory, settings):
    client = recording_transport(respond(200)).client()

    async with make_generator(fake_registry, fake_factory, settings, http_client=client) as generator:
        assert generator.get_provider("fake").http_client is client

    assert client.is_closed is False
    await client.aclose()


@pytest.mark.asyncio
async def test_end_to_end_dezgo_generation(recording_transport, settings, fast_retry):
    """Test the static catalog, cache, factory and Dezgo provider together."""
    transport = recording_transport(respond(200, content=FAKE_PNG, headers={"content-type": "image/png"}))

    async with ImageGenerator(settings=settings, retry_options=fast_retry, http_client=transport.client()) as generator:
        result = await generator.generate_provider_image("flux", "a dragon over a lake", 7.5, "user-1")

    assert result.success is True
    assert result.meta.provider == "dezgo"
    assert result.meta.endpoint == DEZGO_FLUX
    assert str(transport.requests[0].url) == DEZGO_FLUX


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_key", ["dalle3", "flux", "nanoBanana", "grok"])
async def test_missing_credentials_for_every_provider(recording_transport, empty_settings, fast_retry, provider_key):
    """Test no provider touches the network without credentials."""
    transport = recording_transport(respond(200))

    async with ImageGenerator(
        settings=empty_settings, retry_options=fast_retry, http_client=transport.client()
    ) as generator:
        result = await generator.generate_provider_image(provider_key, "a dragon")

    assert result.success is False
    assert result.error_code == ErrorKind.MISSING_CREDENTIALS
    assert transport.requests == []
