"""Interface for HTTP transports.

Defines the contract the connector uses to perform one HTTP exchange.
Implementations must not retry or interpret status codes; that is the
connector's job.
"""

import abc

from ..models.common import TransportResponse
from ..models.connection import RequestDescriptor


class Transport(abc.ABC):
    """Abstract Base Class for sending a single HTTP request."""

    @abc.abstractmethod
    async def send(self, request: RequestDescriptor) -> TransportResponse:
        """Sends the request and returns status, headers and raw body.

        Args:
            request: The fully built request (URL, headers, JSON content).

        Returns:
            The raw TransportResponse for any HTTP status.

        Raises:
            Exception: Connection, DNS or timeout failures, unmodified.
        """
        pass
