"""Interface for network transports.

A transport performs exactly one attempt. Retries, backoff and decoding are
the request executor's job.
"""

import abc

from ..models.request import RequestDescriptor, TransportResponse


class Transport(abc.ABC):
    """Abstract Base Class for a single-shot request sender."""

    @abc.abstractmethod
    async def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Sends the described request once.

        Args:
            descriptor: The immutable request to send.

        Returns:
            The response, whatever its status code.

        Raises:
            TransportError: If no response could be obtained.
        """
        pass

    async def aclose(self) -> None:
        """Releases any underlying connections."""
        return None
