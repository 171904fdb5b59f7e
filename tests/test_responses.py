"""Tests for result envelope models."""

import pytest
from pydantic import ValidationError

from imageharvest.models.errors import ErrorKind
from imageharvest.models.responses import (
    GenerationFailure,
    GenerationSuccess,
    RequestMeta,
    create_error_result,
    create_success_result,
    generate_request_id,
)


def test_create_success_result():
    """Test success result carries data and meta."""
    result = create_success_result("aGVsbG8=", {"provider": "openai", "model": "dall-e-3", "duration_ms": 12})

    assert isinstance(result, GenerationSuccess)
    assert result.success is True
    assert result.data == "aGVsbG8="
    assert result.meta.provider == "openai"
    assert result.meta.model == "dall-e-3"
    assert result.meta.duration_ms == 12
    assert result.meta.request_id


def test_create_error_result_defaults():
    """Test error result defaults to non-retryable with a generated request id."""
    result = create_error_result(ErrorKind.INVALID_PARAMS, "Invalid parameters: prompt")

    assert isinstance(result, GenerationFailure)
    assert result.success is False
    assert result.error_code == ErrorKind.INVALID_PARAMS
    assert result.error_code == "INVALID_PARAMS"
    assert result.retryable is False
    assert result.details is None
    assert result.meta.request_id
    assert result.meta.provider is None


def test_error_result_coerces_details_to_string():
    """Test that non-string vendor details are rendered as text."""
    result = create_error_result(ErrorKind.SERVER_ERROR, "boom", details={"error": "down"}, retryable=True)

    assert result.details == "{'error': 'down'}"
    assert result.retryable is True


def test_meta_drops_none_values_and_keeps_extras():
    """Test meta built from a mapping ignores None and allows extra keys."""
    result = create_error_result(
        ErrorKind.INVALID_PARAMS,
        "No providers supplied",
        meta={"provider": None, "provider_count": 0},
    )

    dumped = result.meta.model_dump()
    assert dumped["provider"] is None
    assert dumped["provider_count"] == 0


def test_existing_meta_is_reused():
    meta = RequestMeta(request_id="abc", provider="grok")
    result = create_success_result("eA==", meta)

    assert result.meta is meta


def test_success_requires_data():
    """Test that an empty payload cannot be reported as success."""
    with pytest.raises(ValidationError):
        create_success_result("")


def test_meta_rejects_negative_duration():
    with pytest.raises(ValidationError):
        RequestMeta(duration_ms=-1)


def test_request_ids_are_unique():
    ids = {generate_request_id() for _ in range(100)}
    assert len(ids) == 100


def test_error_kind_values_match_names():
    """Test every error code serialises as its own name."""
    for kind in ErrorKind:
        assert kind.value == kind.name
    assert len(ErrorKind) == 11
