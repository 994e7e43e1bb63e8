"""Transport implementation backed by httpx.

Used outside an ``async with`` block, every send opens and closes its own
AsyncClient, so nothing stays open between calls. Inside ``async with`` one
pooled AsyncClient is shared by all sends until the block exits.
"""

import logging
from typing import Optional

import httpx

from bcconnector.domain.interfaces.transport import Transport
from bcconnector.domain.models.common import TransportResponse
from bcconnector.domain.models.connection import RequestDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpxTransport(Transport):
    """Sends RequestDescriptors with httpx.AsyncClient."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the transport.

        Args:
            timeout: Request timeout in seconds.
            client: Optional externally-owned AsyncClient to reuse. It is not
                closed by this transport.
            http_transport: Optional low-level httpx transport (e.g.
                httpx.MockTransport) used by clients this transport creates.
        """
        self.timeout = timeout
        self._client = client
        self._owns_client = False
        self._http_transport = http_transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport)

    async def __aenter__(self) -> "HttpxTransport":
        if self._client is None:
            self._client = self._new_client()
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Closes the pooled client if this transport created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        """Performs one HTTP exchange; httpx errors propagate unmodified."""
        if self._client is not None:
            return await self._send_with(self._client, request)
        async with self._new_client() as client:
            return await self._send_with(client, request)

    async def _send_with(self, client: httpx.AsyncClient, request: RequestDescriptor) -> TransportResponse:
        logger.debug(f"HTTP {request.method.value} {request.url}")
        response = await client.request(
            request.method.value,
            request.url,
            headers=request.headers,
            content=request.content,
        )
        logger.debug(f"HTTP {request.method.value} {request.url} -> {response.status_code}")
        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text,
        )
