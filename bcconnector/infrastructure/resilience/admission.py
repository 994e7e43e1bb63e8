"""Client-side admission control.

Caps the number of requests in flight against the transport. Calls beyond the
ceiling wait until a slot frees. Independent of server-side throttling.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AdmissionController:
    """Bounded slot pool guarding transport dispatch.

    The semaphore is created on first use inside a running loop and replaced
    when the controller is used from a different loop, so a controller built
    at import time or reused across ``asyncio.run`` calls keeps working.
    """

    def __init__(self, max_concurrent: Optional[int] = None):
        """Initializes the admission controller.

        Args:
            max_concurrent: Maximum simultaneous in-flight requests, or None
                for no limit.
        """
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError(f"max_concurrent must be a positive integer, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.in_flight = 0
        logger.debug(
            f"AdmissionController initialized: max_concurrent={max_concurrent or 'unbounded'}"
        )

    def _current_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            if self._loop is not None:
                # slots held on a finished loop can never be released there
                logger.debug(f"Event loop changed; resetting {self.in_flight} slot(s)")
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._loop = loop
            self.in_flight = 0
        return self._semaphore

    def is_saturated(self) -> bool:
        """True when a new request would have to wait for a slot."""
        return self.max_concurrent is not None and self.in_flight >= self.max_concurrent

    async def acquire(self) -> None:
        """Waits for a free slot and claims it.

        Cancellation while waiting leaves no slot claimed.
        """
        if self.max_concurrent is not None:
            await self._current_semaphore().acquire()
        self.in_flight += 1

    def release(self) -> None:
        self.in_flight -= 1
        if self._semaphore is not None:
            self._semaphore.release()
