"""Circuit breaker for remote operations.

Fails fast after repeated failures of one class of remote operation and
probes recovery after a cool-down.

State transitions:
- CLOSED -> OPEN: when the failure count reaches failure_threshold
- OPEN -> HALF_OPEN: on the first call after recovery_timeout has elapsed
- HALF_OPEN -> CLOSED: when the single trial call succeeds
- HALF_OPEN -> OPEN: when the trial call fails

Calls admitted before the trial never move the breaker out of HALF_OPEN.

Use one breaker per operation class (worker validation, document upload) so
an outage of one endpoint does not block unrelated calls.
"""

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from workdocs.domain.errors import CircuitOpenError
from workdocs.domain.events.api_events import CircuitStateChanged, dispatch_event

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RECOVERY_TIMEOUT_SECONDS = 60.0


class CircuitState(str, Enum):
    """State of a circuit breaker."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Async circuit breaker wrapping one class of remote operation.

    State is only mutated between awaits on the event loop, so no lock is
    required for coroutines sharing a breaker.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        recovery_timeout: float = DEFAULT_RECOVERY_TIMEOUT_SECONDS,
        name: str = "default",
        ignored_exceptions: Tuple[Type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the circuit breaker.

        Args:
            failure_threshold: Failures (while CLOSED) that open the circuit.
            recovery_timeout: Seconds since the last failure before a trial
                call is allowed through.
            name: Name of the breaker, used in logs and errors.
            ignored_exceptions: Business outcomes that propagate unchanged but
                prove the remote side answered; they count as successes.
            clock: Monotonic time source, injectable for tests.
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be positive")

        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._ignored_exceptions = ignored_exceptions
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0
        self._trial_in_flight = False
        self._trial_generation = 0

        logger.debug(f"CircuitBreaker '{name}' initialized: threshold={failure_threshold}, timeout={recovery_timeout}s")

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self._state.value}, "
            f"failures={self._failure_count}/{self.failure_threshold})"
        )

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def get_state(self) -> CircuitState:
        return self._state

    def time_until_retry(self) -> float:
        """Seconds until an OPEN circuit admits a trial call (0 if not OPEN)."""
        if self._state != CircuitState.OPEN:
            return 0.0
        elapsed = self._clock() - self._last_failure_time
        return max(0.0, self.recovery_timeout - elapsed)

    def reset(self) -> None:
        """Forces the breaker back to CLOSED with a clean failure count."""
        self._failure_count = 0
        self._trial_in_flight = False
        self._trial_generation += 1
        self._transition(CircuitState.CLOSED, self.name)

    async def execute(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        operation_name: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Runs `func` through the breaker.

        Args:
            func: The async operation to run.
            *args: Positional arguments for the operation.
            operation_name: Label used in logs and in CircuitOpenError.
            **kwargs: Keyword arguments for the operation.

        Returns:
            The operation's result.

        Raises:
            CircuitOpenError: Without invoking `func`, while OPEN inside the
                cool-down or while a HALF_OPEN trial is already running.
            Exception: Whatever `func` raised.
        """
        name = operation_name or self.name

        if self._state == CircuitState.OPEN:
            remaining = self.time_until_retry()
            if remaining > 0:
                logger.debug(f"Circuit breaker '{self.name}' is OPEN, rejecting {name} ({remaining:.1f}s left)")
                raise CircuitOpenError(name, retry_after=remaining)
            self._transition(CircuitState.HALF_OPEN, name)
        elif self._state == CircuitState.HALF_OPEN and self._trial_in_flight:
            raise CircuitOpenError(name)

        trial_id: Optional[int] = None
        if self._state == CircuitState.HALF_OPEN:
            self._trial_generation += 1
            trial_id = self._trial_generation
            self._trial_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except self._ignored_exceptions:
            self._on_success(name, self._is_current_trial(trial_id))
            raise
        except Exception:
            self._on_failure(name, self._is_current_trial(trial_id))
            raise
        finally:
            if self._is_current_trial(trial_id):
                self._trial_in_flight = False

        self._on_success(name, self._is_current_trial(trial_id))
        return result

    def _is_current_trial(self, trial_id: Optional[int]) -> bool:
        return trial_id is not None and trial_id == self._trial_generation

    # Only the current trial decides HALF_OPEN; calls admitted earlier still
    # update the counters when they finish.

    def _on_success(self, operation_name: str, is_trial: bool) -> None:
        self._failure_count = 0
        if self._state == CircuitState.HALF_OPEN and is_trial:
            self._transition(CircuitState.CLOSED, operation_name)

    def _on_failure(self, operation_name: str, is_trial: bool) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            if is_trial:
                self._transition(CircuitState.OPEN, operation_name)
        elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
            self._transition(CircuitState.OPEN, operation_name)

    def _transition(self, new_state: CircuitState, operation_name: str) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state

        message = f"Circuit breaker '{self.name}' {old_state.value} -> {new_state.value} for {operation_name}"
        if new_state == CircuitState.OPEN:
            logger.warning(f"{message} (failures={self._failure_count}, threshold={self.failure_threshold})")
        else:
            logger.info(message)
        dispatch_event(CircuitStateChanged(
            breaker=self.name, operation=operation_name, old_state=old_state.value,
            new_state=new_state.value, failure_count=self._failure_count
        ))
