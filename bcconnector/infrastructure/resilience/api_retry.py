"""Service for executing API calls with automatic rate-limit retries.

A logical call is a loop of attempts. Each attempt is classified; a
RateLimited outcome waits for the server-requested delay plus a fixed safety
margin and tries again, anything else ends the call. Transport errors are not
retried here.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from bcconnector.domain.events.api_events import (
    DomainEvent,
    EventListener,
    RequestFailed,
    RequestSucceeded,
    RetryScheduled,
)
from bcconnector.domain.exceptions import ApiError, RetryLimitExceeded
from bcconnector.domain.models.common import JsonPayload
from bcconnector.domain.models.connection import RequestDescriptor
from bcconnector.domain.models.outcome import Failure, ResponseOutcome, Success
from bcconnector.infrastructure.resilience.cancellation import CancellationToken, run_cancellable

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN_SECONDS = 2.0
DEFAULT_RETRY_AFTER_SECONDS = 1.0

Sleeper = Callable[[float], Awaitable[None]]
Attempt = Callable[[int], Awaitable[ResponseOutcome]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behavior for rate-limited (429) responses.

    Attributes:
        safety_margin_seconds: Added to every server-requested delay.
        default_retry_after_seconds: Used when a 429 has no usable retry header.
        max_retries: Maximum number of retries per logical call; None retries
            for as long as the server keeps throttling.
        jitter_seconds: Upper bound of a random extra delay added per retry.
    """
    safety_margin_seconds: float = DEFAULT_SAFETY_MARGIN_SECONDS
    default_retry_after_seconds: float = DEFAULT_RETRY_AFTER_SECONDS
    max_retries: Optional[int] = None
    jitter_seconds: float = 0.0

    def __post_init__(self) -> None:
        for name in ("safety_margin_seconds", "default_retry_after_seconds", "jitter_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    def delay_for(self, retry_after_seconds: float) -> float:
        """Seconds to wait before retrying after the server asked for `retry_after_seconds`."""
        delay = retry_after_seconds + self.safety_margin_seconds
        if self.jitter_seconds:
            delay += random.uniform(0, self.jitter_seconds)
        return delay

    def allows_retry(self, retries_done: int) -> bool:
        return self.max_retries is None or retries_done < self.max_retries


def dispatch_event(event: DomainEvent, listener: Optional[EventListener]) -> None:
    """Logs the event and forwards it to the listener, if any."""
    logger.debug(f"EVENT: {event}")
    if listener is None:
        return
    try:
        listener(event)
    except Exception as e:
        logger.error(f"Event listener failed for {type(event).__name__}: {e}", exc_info=True)


class RateLimitRetryService:
    """Runs a logical call, retrying attempts that come back RateLimited."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the RateLimitRetryService.

        Args:
            policy: Retry policy; defaults to RetryPolicy().
            sleep: Coroutine function used for backoff delays (asyncio.sleep by default).
            event_listener: Optional callable receiving request lifecycle events.
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self.event_listener = event_listener

        logger.debug(
            f"RateLimitRetryService initialized: margin={self.policy.safety_margin_seconds}s, "
            f"default_retry_after={self.policy.default_retry_after_seconds}s, "
            f"max_retries={self.policy.max_retries if self.policy.max_retries is not None else 'unbounded'}"
        )

    async def execute_with_retry(
        self,
        request: RequestDescriptor,
        attempt: Attempt,
        cancel_token: Optional[CancellationToken] = None,
    ) -> JsonPayload:
        """Executes attempts until one resolves or fails definitively.

        Args:
            request: The request being executed (for events, logs and errors).
            attempt: Coroutine function performing one dispatch; receives the
                1-based attempt number and returns its classified outcome.
            cancel_token: Optional token aborting the backoff wait.

        Returns:
            The decoded body of the successful response.

        Raises:
            ApiError: Non-200/429 status.
            ResponseParseError: 200 with a malformed body.
            RetryLimitExceeded: Still throttled after policy.max_retries retries.
            RequestCancelled: The cancel token fired.
            Exception: Transport errors, unmodified.
        """
        method = request.method.value
        start_time = time.perf_counter()
        attempt_number = 0

        while True:
            attempt_number += 1
            try:
                outcome = await attempt(attempt_number)
            except Exception as e:
                logger.warning(f"{method} {request.url} failed on attempt {attempt_number}: {type(e).__name__}: {e}")
                dispatch_event(
                    RequestFailed(method=method, url=request.url, error_type=type(e).__name__, error_message=str(e)),
                    self.event_listener,
                )
                raise

            if isinstance(outcome, Success):
                latency_ms = (time.perf_counter() - start_time) * 1000
                logger.debug(f"{method} {request.url} succeeded after {attempt_number} attempt(s)")
                dispatch_event(
                    RequestSucceeded(method=method, url=request.url, attempts=attempt_number, latency_ms=latency_ms),
                    self.event_listener,
                )
                return outcome.data

            if isinstance(outcome, Failure):
                self._report_failure(request, outcome.error, outcome.status_code)
                raise outcome.error

            # RateLimited: back off, then loop for the next attempt
            retries_done = attempt_number - 1
            if not self.policy.allows_retry(retries_done):
                error = RetryLimitExceeded(attempt_number, outcome.body, method=method, url=request.url)
                self._report_failure(request, error, 429)
                raise error

            delay = self.policy.delay_for(outcome.retry_after_seconds)
            logger.info(
                f"{method} {request.url} rate limited (retry after {outcome.retry_after_seconds}s). "
                f"Retrying in {delay:.2f}s..."
            )
            dispatch_event(
                RetryScheduled(
                    method=method,
                    url=request.url,
                    attempt_number=attempt_number,
                    retry_after_seconds=outcome.retry_after_seconds,
                    delay_seconds=delay,
                ),
                self.event_listener,
            )
            await run_cancellable(self._sleep(delay), cancel_token)

    def _report_failure(self, request: RequestDescriptor, error: Exception, status_code: Optional[int]) -> None:
        level = logging.WARNING if isinstance(error, ApiError) else logging.ERROR
        logger.log(level, f"{request.method.value} {request.url} failed: {error}")
        dispatch_event(
            RequestFailed(
                method=request.method.value,
                url=request.url,
                error_type=type(error).__name__,
                error_message=str(error),
                status_code=status_code,
            ),
            self.event_listener,
        )
