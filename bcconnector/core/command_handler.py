"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs them through a
Connection and reports results or errors through the UserInterface. All
per-command state travels in an explicit RequestContext.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import httpx

from bcconnector.core.connection import Connection
from bcconnector.domain.events.api_events import DomainEvent, RequestDeferred, RetryScheduled
from bcconnector.domain.exceptions import ApiError, ConnectorError, ResponseParseError
from bcconnector.domain.interfaces.transport import Transport
from bcconnector.domain.interfaces.user_interface import UserInterface
from bcconnector.domain.models.common import JsonPayload
from bcconnector.domain.models.connection import ConnectionConfig, HttpMethod
from bcconnector.infrastructure.http.httpx_transport import DEFAULT_TIMEOUT_SECONDS, HttpxTransport
from bcconnector.infrastructure.resilience.api_retry import RetryPolicy, Sleeper

logger = logging.getLogger(__name__)

TransportFactory = Callable[[float], Transport]

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class RequestContext:
    """Everything a command needs to talk to the API."""
    config: ConnectionConfig
    retry_policy: RetryPolicy
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def default_transport_factory(timeout: float) -> Transport:
    return HttpxTransport(timeout=timeout)


class CommandHandler:
    """Handles incoming commands and delegates to the Connection."""

    def __init__(
        self,
        context: RequestContext,
        ui: UserInterface,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Optional[Sleeper] = None,
    ):
        """Initializes the CommandHandler.

        Args:
            context: Connection settings for this invocation.
            ui: Where results and errors are shown.
            transport_factory: Builds the Transport from a timeout; defaults to httpx.
            sleep: Backoff sleep override, passed through to the Connection.
        """
        self.context = context
        self.ui = ui
        self.transport_factory = transport_factory or default_transport_factory
        self.sleep = sleep

    def _on_event(self, event: DomainEvent) -> None:
        """Surfaces throttling to the user; the request itself is unaffected."""
        if isinstance(event, RetryScheduled):
            self.ui.display_info(
                f"Rate limited on {event.method} {event.url} (attempt {event.attempt_number}); "
                f"retrying in {event.delay_seconds:.1f}s"
            )
        elif isinstance(event, RequestDeferred):
            logger.debug(f"{event.method} {event.url} waiting for a free slot ({event.in_flight} in flight)")

    async def handle_request(
        self,
        method: Union[HttpMethod, str],
        path: str,
        body: JsonPayload = None,
    ) -> int:
        """Executes one API call and displays its result.

        Returns:
            Process exit code: 0 on success, 1 on any failure.
        """
        logger.info(f"Handling {getattr(method, 'value', method)} {path}")
        transport = self.transport_factory(self.context.timeout_seconds)
        try:
            async with Connection(
                self.context.config,
                transport=transport,
                retry_policy=self.context.retry_policy,
                sleep=self.sleep,
                event_listener=self._on_event,
            ) as connection:
                result = await connection.execute(method, path, body)
        except ApiError as e:
            logger.debug(f"API error: {e}", exc_info=True)
            self.ui.display_error(f"API returned status {e.status_code} for {e.method} {e.url}\n{e.body}")
            return EXIT_FAILURE
        except ResponseParseError as e:
            self.ui.display_error(f"{e}\n{e.body}")
            return EXIT_FAILURE
        except ConnectorError as e:
            self.ui.display_error(str(e))
            return EXIT_FAILURE
        except httpx.HTTPError as e:
            logger.debug(f"Transport error: {e}", exc_info=True)
            self.ui.display_error(f"Transport error ({type(e).__name__}): {e}")
            return EXIT_FAILURE

        self.ui.display_result(result)
        return EXIT_OK

