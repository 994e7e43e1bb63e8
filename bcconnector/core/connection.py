"""API Connection: CRUD operations against a store-scoped REST API.

Initialized with a store's API information (store hash, OAuth token, app
client id, API base URL), the connection performs GET/POST/PUT/DELETE
requests relative to the store's resource root.

All operations are coroutines. Rate-limited (429) requests are retried
automatically after the server-requested delay plus a 2 second margin, so
callers never see throttling unless a retry ceiling is configured.
"""

import logging
from typing import Optional, Union

from bcconnector.domain.events.api_events import EventListener, RequestDeferred, RequestDispatched
from bcconnector.domain.exceptions import ConfigurationError
from bcconnector.domain.interfaces.transport import Transport
from bcconnector.domain.models.common import JsonPayload
from bcconnector.domain.models.connection import ConnectionConfig, HttpMethod, RequestDescriptor
from bcconnector.domain.models.outcome import ResponseOutcome, classify_response
from bcconnector.infrastructure.http.httpx_transport import HttpxTransport
from bcconnector.infrastructure.resilience.admission import AdmissionController
from bcconnector.infrastructure.resilience.api_retry import (
    RateLimitRetryService,
    RetryPolicy,
    Sleeper,
    dispatch_event,
)
from bcconnector.infrastructure.resilience.cancellation import CancellationToken, run_cancellable

logger = logging.getLogger(__name__)


class Connection:
    """Connector for one store. Immutable and safe to share across tasks."""

    def __init__(
        self,
        config: ConnectionConfig,
        transport: Optional[Transport] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the connection.

        Args:
            config: Validated store configuration. Its max_concurrent_requests
                bounds in-flight requests for all four operations.
            transport: HTTP transport; defaults to an HttpxTransport.
            retry_policy: 429 retry behavior; defaults to unbounded retries
                with a 2 second safety margin.
            sleep: Coroutine function used for backoff waits (asyncio.sleep).
            event_listener: Optional callable receiving request lifecycle events.
        """
        if not isinstance(config, ConnectionConfig):
            raise ConfigurationError(
                f"Connection needs to be initialized with a ConnectionConfig, got {type(config).__name__}."
            )
        self.config = config
        self.transport = transport or HttpxTransport()
        self.event_listener = event_listener
        self.admission = AdmissionController(config.max_concurrent_requests)
        self.retry_service = RateLimitRetryService(
            policy=retry_policy,
            sleep=sleep,
            event_listener=event_listener,
        )
        logger.debug(f"Connection initialized for {config.resource_root}")

    @property
    def resource_root(self) -> str:
        """The store-scoped base URL every path is appended to."""
        return self.config.resource_root

    @property
    def retry_policy(self) -> RetryPolicy:
        return self.retry_service.policy

    async def __aenter__(self) -> "Connection":
        if hasattr(self.transport, "__aenter__"):
            await self.transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if hasattr(self.transport, "__aexit__"):
            await self.transport.__aexit__(exc_type, exc, tb)

    # --- CRUD operations ---

    async def get(self, path: str, *, cancel_token: Optional[CancellationToken] = None) -> JsonPayload:
        """Performs an HTTP GET request to the provided endpoint.

        The resource root is already set, so only the endpoint is given, e.g.
        '/products'. A missing leading '/' is added automatically.

        Args:
            path: The API resource endpoint to request.
            cancel_token: Optional token that aborts the call.

        Returns:
            The decoded JSON response.
        """
        return await self.execute(HttpMethod.GET, path, cancel_token=cancel_token)

    async def post(
        self,
        path: str,
        body: JsonPayload = None,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> JsonPayload:
        """Performs an HTTP POST request with `body` serialized as JSON."""
        return await self.execute(HttpMethod.POST, path, body, cancel_token=cancel_token)

    async def put(
        self,
        path: str,
        body: JsonPayload = None,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> JsonPayload:
        """Performs an HTTP PUT request with `body` serialized as JSON."""
        return await self.execute(HttpMethod.PUT, path, body, cancel_token=cancel_token)

    async def delete(self, path: str, *, cancel_token: Optional[CancellationToken] = None) -> JsonPayload:
        """Performs an HTTP DELETE request to the provided endpoint."""
        return await self.execute(HttpMethod.DELETE, path, cancel_token=cancel_token)

    # --- Request execution ---

    def build_request(
        self,
        method: Union[HttpMethod, str],
        path: str,
        body: JsonPayload = None,
    ) -> RequestDescriptor:
        """Gets the request options (URL, headers, JSON content) for one call.

        Raises:
            InvalidRequestError: Empty path, body on GET/DELETE or a body
                that cannot be serialized to JSON.
        """
        return RequestDescriptor.build(self.config, method, path, body)

    async def execute(
        self,
        method: Union[HttpMethod, str],
        path: str,
        body: JsonPayload = None,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> JsonPayload:
        """Runs one logical call, including all of its rate-limit retries.

        Raises:
            InvalidRequestError: The request could not be built.
            ApiError: The API answered with a status other than 200/429.
            ResponseParseError: A 200 response carried malformed JSON.
            RetryLimitExceeded: Only when the retry policy sets max_retries.
            RequestCancelled: `cancel_token` fired before completion.
            Exception: Transport errors (httpx.TransportError etc.), unmodified.
        """
        request = self.build_request(method, path, body)

        async def attempt(attempt_number: int) -> ResponseOutcome:
            return await self._attempt(request, attempt_number, cancel_token)

        return await self.retry_service.execute_with_retry(request, attempt, cancel_token)

    async def _attempt(
        self,
        request: RequestDescriptor,
        attempt_number: int,
        cancel_token: Optional[CancellationToken],
    ) -> ResponseOutcome:
        """Dispatches one attempt while holding an admission slot."""
        if self.admission.is_saturated():
            dispatch_event(
                RequestDeferred(method=request.method.value, url=request.url, in_flight=self.admission.in_flight),
                self.event_listener,
            )
        # acquire runs in this task: once it returns the slot is ours, and no
        # await separates it from the try that releases it
        await run_cancellable(self.admission.acquire(), cancel_token)
        try:
            dispatch_event(
                RequestDispatched(method=request.method.value, url=request.url, attempt_number=attempt_number),
                self.event_listener,
            )
            response = await run_cancellable(self.transport.send(request), cancel_token)
        finally:
            # the slot is never held across a backoff wait
            self.admission.release()

        return classify_response(request, response, self.retry_policy.default_retry_after_seconds)
