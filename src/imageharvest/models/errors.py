"""Error taxonomy and internal exceptions for ImageHarvest."""

from enum import Enum


class ErrorKind(str, Enum):
    """Provider-agnostic error codes surfaced in failure results."""

    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    INVALID_PARAMS = "INVALID_PARAMS"
    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    CONTENT_POLICY = "CONTENT_POLICY"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class MissingCredentialsError(ValueError):
    """Raised when a provider's required configuration values are absent."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


class ProviderConfigError(ValueError):
    """Raised when a resolved provider config lacks a value needed to build the request."""


class PayloadTooLargeError(ValueError):
    """Raised when a provider response exceeds the payload ceiling."""


class InvalidProviderResponseError(ValueError):
    """Raised when a provider response carries no usable image payload."""


class RequestAbortedError(Exception):
    """Raised when the caller's abort signal fires during a request."""

    code = "ECONNABORTED"
