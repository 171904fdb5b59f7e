"""Shared httpx client construction and abortable requests."""

import asyncio
from typing import Any, Optional

import httpx

from imageharvest.models.errors import RequestAbortedError

MAX_CONNECTIONS = 50
MAX_REDIRECTS = 3
DEFAULT_TIMEOUT = 120.0

USER_AGENT = "Image-Harvest/1.0"


def create_http_client(timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> httpx.AsyncClient:
    """
    Create an AsyncClient with a keep-alive pool meant to be shared across providers.

    Per-request timeouts passed to client.post() override the default here.
    """
    return httpx.AsyncClient(
        timeout=timeout,
        limits=httpx.Limits(max_connections=MAX_CONNECTIONS, max_keepalive_connections=MAX_CONNECTIONS),
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
        **kwargs,
    )


async def _request_with_abort(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    signal: Optional[asyncio.Event],
    **kwargs: Any,
) -> httpx.Response:
    if signal is None:
        return await client.request(method, url, **kwargs)

    if signal.is_set():
        raise RequestAbortedError("Request aborted before it was sent")

    request_task = asyncio.ensure_future(client.request(method, url, **kwargs))
    abort_task = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        abort_task.cancel()
        if not request_task.done():
            request_task.cancel()
            await asyncio.gather(request_task, return_exceptions=True)

    if request_task.cancelled():
        raise RequestAbortedError("Request aborted by caller")

    return request_task.result()


async def post_with_abort(
    client: httpx.AsyncClient,
    url: str,
    *,
    signal: Optional[asyncio.Event] = None,
    **kwargs: Any,
) -> httpx.Response:
    """POST that fails with RequestAbortedError as soon as signal is set."""
    return await _request_with_abort(client, "POST", url, signal, **kwargs)


async def get_with_abort(
    client: httpx.AsyncClient,
    url: str,
    *,
    signal: Optional[asyncio.Event] = None,
    **kwargs: Any,
) -> httpx.Response:
    """GET counterpart of post_with_abort."""
    return await _request_with_abort(client, "GET", url, signal, **kwargs)
