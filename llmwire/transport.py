"""
HTTP transport shared by all provider calls.

One ``httpx.AsyncClient`` carries every request a ``ProviderClient`` makes.
Transport failures are wrapped in ``TransportError`` and non-2xx statuses in
``ProviderResponseError``; nothing is retried.
"""
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .config import ClientOptions
from .errors import ProtocolError, ProviderResponseError, TransportError
from .logger import get_logger
from .types import JSON, WireRequest

logger = get_logger(__name__)


class HttpTransport:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    If no client is passed in, one is created from ``options`` and closed by
    ``aclose``. A caller-supplied client is never closed here.
    """

    def __init__(self, options: ClientOptions, http_client: Optional[httpx.AsyncClient] = None):
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=options.timeout,
            trust_env=not options.disable_proxy,
        )

    async def send_json(self, request: WireRequest) -> JSON:
        """
        Send a buffered request and decode the JSON response body.

        Raises:
            TransportError: If the request could not be completed.
            ProviderResponseError: If the status is not 2xx.
            ProtocolError: If the body is not JSON.
        """
        logger.debug("%s %s (%s)", request.method, request.redacted_url, request.provider)
        try:
            response = await self.client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content(),
            )
        except httpx.TransportError as e:
            raise TransportError(f"{request.provider} request failed: {e}") from e

        _raise_for_status(request, response.status_code, response.text)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProtocolError(f"{request.provider} returned a non-JSON body: {e}") from e

    @asynccontextmanager
    async def open_stream(self, request: WireRequest) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming response. The response is closed when the block exits,
        including on error or cancellation.
        """
        logger.debug("%s %s (%s, streaming)", request.method, request.redacted_url, request.provider)
        try:
            async with self.client.stream(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content(),
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    _raise_for_status(request, response.status_code, body.decode("utf-8", errors="replace"))
                yield response
        except httpx.TransportError as e:
            raise TransportError(f"{request.provider} stream failed: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def _raise_for_status(request: WireRequest, status_code: int, body: str) -> None:
    if 200 <= status_code < 300:
        return
    logger.warning("%s returned HTTP %d", request.provider, status_code)
    raise ProviderResponseError(
        f"{request.provider} returned HTTP {status_code}",
        status_code=status_code,
        body=body,
    )
