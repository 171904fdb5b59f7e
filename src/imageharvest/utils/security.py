"""Helpers that keep secrets and raw payloads out of logs."""

import base64
from typing import Any, MutableMapping, Optional

SENSITIVE_HEADER_PATTERNS = ("authorization", "x-dezgo-key", "api-key")

REDACTED_BEARER = "Bearer [REDACTED]"


def _captured_headers(error: BaseException) -> Optional[MutableMapping[str, str]]:
    """Locate the request headers an httpx/openai error carries."""
    try:
        request = getattr(error, "request", None)
    except RuntimeError:
        # httpx raises when .request was never attached
        request = None

    headers = getattr(request, "headers", None)
    if headers is None:
        headers = getattr(error, "headers", None)
    return headers


def mask_sensitive_headers(error: BaseException) -> None:
    """
    Redact credentials from the request captured on an error, in place.

    Headers whose name matches a sensitive pattern are deleted; any other
    header whose value looks like a bearer token is rewritten. Header names
    are matched case-insensitively.
    """
    headers = _captured_headers(error)
    if headers is None:
        return

    for key in list(headers.keys()):
        lower_key = key.lower()
        if any(pattern in lower_key for pattern in SENSITIVE_HEADER_PATTERNS):
            del headers[key]
            continue

        value = headers[key]
        if isinstance(value, str) and value.lower().startswith("bearer "):
            headers[key] = REDACTED_BEARER


def truncate_error_message(message: Any, max_length: int = 500) -> str:
    """Return the message, truncated with a marker when it exceeds max_length."""
    if not message or not isinstance(message, str):
        return str(message or "Unknown error")

    if len(message) <= max_length:
        return message

    return f"{message[:max_length]}... (truncated {len(message) - max_length} chars)"


def get_safe_error_data(response_data: Any) -> str:
    """Return a bounded, log-safe rendering of a vendor error body."""
    if response_data is None or (isinstance(response_data, (str, bytes, bytearray)) and not response_data):
        return "No data"

    if isinstance(response_data, (bytes, bytearray, memoryview)):
        return "<binary data>"

    return str(response_data)[:500]


def binary_to_base64(data: Any) -> str:
    """Encode bytes, bytearray, memoryview or any buffer-protocol object as base64."""
    if isinstance(data, bytes):
        raw = data
    elif isinstance(data, (bytearray, memoryview)):
        raw = bytes(data)
    else:
        raw = bytes(memoryview(data))

    return base64.b64encode(raw).decode("ascii")
