"""Transport implementation backed by :class:`httpx.AsyncClient`.

Performs exactly one attempt per ``send``. Status codes are reported, never
raised; only failures to obtain a response become ``TransportError``.
"""

import logging
from typing import Optional

import httpx

from auracli.domain.interfaces.transport import Transport
from auracli.domain.models.errors import TransportError
from auracli.domain.models.request import RequestDescriptor, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_TOTAL_TIMEOUT = 30.0


class HttpxTransport(Transport):
    """Sends request descriptors through a shared httpx client."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            timeout: Total timeout per attempt in seconds, must be positive.
            client: Pre-built client (tests pass one with ``httpx.MockTransport``).
        """
        total_timeout = DEFAULT_TOTAL_TIMEOUT if timeout is None else timeout
        if total_timeout <= 0:
            raise ValueError(f"HTTP timeout must be positive, got {total_timeout}")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(total_timeout, connect=min(DEFAULT_CONNECT_TIMEOUT, total_timeout)),
            follow_redirects=True,
        )
        logger.info(f"HttpxTransport initialized (timeout={total_timeout}s)")

    async def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        logger.debug(f"HTTP {descriptor.method} {str(descriptor.target).split('?', 1)[0]}")
        try:
            response = await self._client.request(
                descriptor.method,
                str(descriptor.target),
                headers=dict(descriptor.headers),
                content=descriptor.body,
            )
        except httpx.RequestError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
