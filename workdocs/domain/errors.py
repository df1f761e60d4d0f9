"""Exception taxonomy for WorkDocs.

Adapters translate library exceptions (httpx, OSError) into these types at
the boundary so the core services and the retry policy can classify
failures without knowing which library raised them.
"""

from typing import Optional


class WorkdocsError(Exception):
    """Base class for all WorkDocs errors."""


class ConfigurationError(WorkdocsError):
    """Required configuration is missing or malformed."""


class DiscoveryError(WorkdocsError):
    """The input directory could not be enumerated. Aborts the run."""


class ValidationError(WorkdocsError):
    """Local validation of an item or identifier failed. Never retried."""


class TransportError(WorkdocsError):
    """A remote call failed at the network or HTTP layer.

    Attributes:
        status_code: HTTP status of the response, or None when no response
            was received (connection reset, timeout, name resolution).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteRejection(WorkdocsError):
    """Workday processed the request and rejected it. Not retried."""


class NotFoundError(WorkdocsError):
    """The subject (worker) could not be resolved. Not retried."""


class AuthFailure(WorkdocsError):
    """A bearer credential could not be obtained for an environment."""


class CircuitOpenError(WorkdocsError):
    """A circuit breaker rejected the call without executing it."""

    def __init__(self, operation_name: str, retry_after: float = 0.0):
        super().__init__(f"Circuit breaker is OPEN for {operation_name}")
        self.operation_name = operation_name
        self.retry_after = retry_after
