"""Count-based circuit breaker used in front of upstream HTTP dependencies.

States and transitions:

* CLOSED: every call is admitted. Outcomes are kept in a rolling window of
  the last ``sliding_window_size`` calls. Once ``minimum_number_of_calls``
  outcomes are recorded and the failure rate reaches
  ``failure_rate_threshold`` percent, the breaker opens.
* OPEN: calls are rejected with ``CallNotPermitted``. The first call after
  ``wait_duration_in_open_state`` seconds moves the breaker to HALF_OPEN and
  is admitted as a trial.
* HALF_OPEN: up to ``permitted_calls_in_half_open`` trials are admitted. Any
  failed trial re-opens the breaker; when all permitted trials succeed it
  closes again with an empty window.

Outcomes that are neither success nor failure (e.g. a definitive "not found"
from upstream, or a cancelled call) are reported through ``on_ignored`` and
only release the permission.

Every ``acquire`` returns a permit bound to the current state epoch. Outcomes
reported with a permit from an older epoch are dropped, so a slow call that
started before a transition can never be counted against the new state.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Deque, Tuple, Type, TypeVar

from review_api.core.exceptions import CallNotPermitted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    sliding_window_size: int = 5
    minimum_number_of_calls: int = 3
    failure_rate_threshold: float = 60.0
    wait_duration_in_open_state: float = 3.0
    permitted_calls_in_half_open: int = 2

    def __post_init__(self) -> None:
        if self.sliding_window_size < 1:
            raise ValueError("sliding_window_size must be >= 1")
        if self.minimum_number_of_calls < 1:
            raise ValueError("minimum_number_of_calls must be >= 1")
        if not 0 < self.failure_rate_threshold <= 100:
            raise ValueError("failure_rate_threshold must be in (0, 100]")
        if self.wait_duration_in_open_state < 0:
            raise ValueError("wait_duration_in_open_state must be >= 0")
        if self.permitted_calls_in_half_open < 1:
            raise ValueError("permitted_calls_in_half_open must be >= 1")


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._epoch = 0
        # True = failure
        self._window: Deque[bool] = deque(
            maxlen=self.config.sliding_window_size)
        self._opened_at = 0.0
        self._half_open_admitted = 0
        self._half_open_successes = 0
        self._not_permitted = 0

    # ---------- observation ----------

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_rate(self) -> float:
        """Failure percentage over the window, -1 below the minimum calls."""
        with self._lock:
            return self._failure_rate()

    def metrics(self) -> dict:
        with self._lock:
            failed = sum(self._window)
            return {
                "name": self.name,
                "state": self._state.value,
                "buffered_calls": len(self._window),
                "failed_calls": failed,
                "successful_calls": len(self._window) - failed,
                "failure_rate": self._failure_rate(),
                "not_permitted_calls": self._not_permitted,
            }

    # ---------- permission ----------

    def acquire(self) -> int:
        """Admit a call or raise ``CallNotPermitted``; returns the permit."""
        with self._lock:
            if self._state is CircuitState.OPEN:
                waited = self._clock() - self._opened_at
                if waited < self.config.wait_duration_in_open_state:
                    self._not_permitted += 1
                    raise CallNotPermitted(self.name)
                self._transition(CircuitState.HALF_OPEN)

            if self._state is CircuitState.HALF_OPEN:
                limit = self.config.permitted_calls_in_half_open
                if self._half_open_admitted >= limit:
                    self._not_permitted += 1
                    raise CallNotPermitted(self.name)
                self._half_open_admitted += 1

            return self._epoch

    # ---------- outcomes ----------

    def on_success(self, permit: int) -> None:
        with self._lock:
            if permit != self._epoch:
                return
            if self._state is CircuitState.HALF_OPEN:
                self._half_open_successes += 1
                if (self._half_open_successes
                        >= self.config.permitted_calls_in_half_open):
                    self._transition(CircuitState.CLOSED)
            elif self._state is CircuitState.CLOSED:
                self._record(failed=False)

    def on_failure(self, permit: int) -> None:
        with self._lock:
            if permit != self._epoch:
                return
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif self._state is CircuitState.CLOSED:
                self._record(failed=True)

    def on_ignored(self, permit: int) -> None:
        with self._lock:
            if permit != self._epoch:
                return
            if self._state is CircuitState.HALF_OPEN:
                self._half_open_admitted -= 1

    def reset(self) -> None:
        with self._lock:
            self._transition(CircuitState.CLOSED)
            self._not_permitted = 0

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        ignore: Tuple[Type[BaseException], ...] = (),
    ) -> T:
        """Run ``fn`` under the breaker; exceptions in ``ignore`` are neutral."""
        permit = self.acquire()
        try:
            result = await fn()
        except ignore:
            self.on_ignored(permit)
            raise
        except Exception:
            self.on_failure(permit)
            raise
        except BaseException:
            # cancelled: no verdict on upstream, but the permit must go back
            self.on_ignored(permit)
            raise
        self.on_success(permit)
        return result

    # ---------- internals (lock held) ----------

    def _failure_rate(self) -> float:
        minimum = min(self.config.minimum_number_of_calls,
                      self.config.sliding_window_size)
        if len(self._window) < minimum:
            return -1.0
        return 100.0 * sum(self._window) / len(self._window)

    def _record(self, failed: bool) -> None:
        self._window.append(failed)
        rate = self._failure_rate()
        if rate >= self.config.failure_rate_threshold:
            self._transition(CircuitState.OPEN)

    def _transition(self, to_state: CircuitState) -> None:
        from_state = self._state
        self._state = to_state
        self._epoch += 1
        self._half_open_admitted = 0
        self._half_open_successes = 0
        if to_state is CircuitState.OPEN:
            self._opened_at = self._clock()
        if to_state is CircuitState.CLOSED:
            self._window.clear()
        if from_state is not to_state:
            logger.warning(
                "circuit_breaker_transition",
                extra={
                    "breaker": self.name,
                    "from_state": from_state.value,
                    "to_state": to_state.value,
                },
            )
