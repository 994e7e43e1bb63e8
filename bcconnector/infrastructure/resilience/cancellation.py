"""Opt-in cancellation for pending connector calls.

A CancellationToken is checked at every suspension point of a logical call:
while waiting for an admission slot, while the transport is in flight and
while backing off after a 429.

The token holds no event-loop state, so one token (like one Connection) can
be created outside a running loop and used from any number of loops.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from bcconnector.domain.exceptions import RequestCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Caller-owned flag that aborts the calls it was passed to."""

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        """Marks the token cancelled and interrupts every call waiting on it."""
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason
        logger.debug(f"Cancellation requested: {reason or 'no reason given'}")
        for callback in list(self._callbacks):
            callback()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled(self.reason or "Request was cancelled")

    def add_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)


async def run_cancellable(awaitable: Awaitable[T], token: Optional[CancellationToken]) -> T:
    """Awaits `awaitable` in the current task, aborting it with RequestCancelled if `token` fires.

    The work is never moved to a separate task: a firing token cancels the
    calling task at its current await, so anything the awaitable acquires is
    either fully acquired or handed back by the awaitable itself. Without a
    token this is a plain await.
    """
    if token is None:
        return await awaitable

    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        token.raise_if_cancelled()

    task = asyncio.current_task()
    interrupted = False

    def interrupt() -> None:
        nonlocal interrupted
        interrupted = True
        task.cancel()

    token.add_callback(interrupt)
    try:
        result = await awaitable
    except asyncio.CancelledError:
        if not interrupted:
            raise
        # the cancellation was ours; don't leave it counted against the task
        task.uncancel()
        raise RequestCancelled(token.reason or "Request was cancelled") from None
    else:
        if interrupted:
            # the awaitable absorbed the cancellation and finished; its result stands
            task.uncancel()
    finally:
        token.remove_callback(interrupt)
    return result
