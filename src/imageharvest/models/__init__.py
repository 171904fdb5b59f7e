"""Models package for ImageHarvest."""

from imageharvest.models.errors import (
    ErrorKind,
    InvalidProviderResponseError,
    MissingCredentialsError,
    PayloadTooLargeError,
    ProviderConfigError,
    RequestAbortedError,
)
from imageharvest.models.requests import GenerationOptions, ModelRecord, ProviderConfig, ProviderType
from imageharvest.models.responses import (
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
    RequestMeta,
    create_error_result,
    create_success_result,
    generate_request_id,
)

__all__ = [
    "ErrorKind",
    "InvalidProviderResponseError",
    "MissingCredentialsError",
    "PayloadTooLargeError",
    "ProviderConfigError",
    "RequestAbortedError",
    "GenerationOptions",
    "ModelRecord",
    "ProviderConfig",
    "ProviderType",
    "GenerationFailure",
    "GenerationResult",
    "GenerationSuccess",
    "RequestMeta",
    "create_error_result",
    "create_success_result",
    "generate_request_id",
]
