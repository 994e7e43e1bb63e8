"""Domain Events related to request execution and resilience.

Examples include events for when requests are dispatched, deferred for an
admission slot, retried after throttling, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Callable, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Request lifecycle events ---

@dataclass
class RequestDispatched(DomainEvent):
    """Event triggered when an attempt is handed to the transport."""
    method: str
    url: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestDeferred(DomainEvent):
    """Event triggered when an attempt waits because every admission slot is taken."""
    method: str
    url: str
    in_flight: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a rate-limited (429) attempt is scheduled for retry."""
    method: str
    url: str
    attempt_number: int
    retry_after_seconds: float
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when a logical call resolves."""
    method: str
    url: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when a logical call fails definitively."""
    method: str
    url: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


EventListener = Callable[[DomainEvent], None]
