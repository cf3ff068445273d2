"""Domain Events related to API calls and resilience.

Emitted by the request executor for every attempt, scheduled retry, success
and terminal failure of a logical call.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an attempt is about to be made."""
    endpoint: str
    attempt_number: int
    request_id: Optional[str] = None  # shared by every event of one logical call
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a logical call succeeds."""
    endpoint: str
    attempts: int
    latency_ms: float
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a logical call fails definitively."""
    endpoint: str
    attempts: int
    error_type: str
    error_message: str
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    endpoint: str
    attempt_number: int  # the attempt that failed
    delay_seconds: float
    error_type: str = ""
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
