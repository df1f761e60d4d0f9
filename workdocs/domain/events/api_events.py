"""Domain Events related to API calls and resilience.

Examples include events for when calls are retried, fail, succeed, or when a
circuit breaker changes state.
"""

import logging
from dataclasses import dataclass, field
import time
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a (possibly retried) API call succeeds."""
    operation: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively."""
    operation: str
    attempts: int
    error_type: str
    error_message: str
    retryable: bool
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    operation: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class CircuitStateChanged(DomainEvent):
    """Event triggered when a circuit breaker transitions between states."""
    breaker: str
    operation: str
    old_state: str
    new_state: str
    failure_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class TokenRefreshed(DomainEvent):
    """Event triggered when a new access token is cached for an environment."""
    environment: str
    valid_for_seconds: float
    token_type: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: DomainEvent) -> None:
    """Publishes a domain event. Events are only logged for now."""
    logger.debug(f"EVENT: {event}")
