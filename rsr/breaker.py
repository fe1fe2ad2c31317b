from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from threading import Lock
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitOpenError(RuntimeError):
    pass


class CircuitState(str, Enum):
    closed = "closed"
    open = "open"
    half_open = "half_open"


class CircuitBreaker:
    """Closed / open / half-open breaker over a rolling window of outcomes.

    The window holds the last `volume_threshold` call outcomes. Once it is
    full and the failure share reaches `failure_ratio`, the breaker opens and
    rejects calls for `delay_s`. After that a single trial call is let
    through: success closes the breaker, failure opens it again.
    """

    def __init__(
        self,
        name: str,
        volume_threshold: int = 10,
        failure_ratio: float = 0.5,
        delay_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.volume_threshold = max(1, int(volume_threshold))
        self.failure_ratio = failure_ratio
        self.delay_s = delay_s
        self._clock = clock
        self._lock = Lock()
        self._window: deque[bool] = deque(maxlen=self.volume_threshold)  # True == failure
        self._state = CircuitState.closed
        self._opened_at = 0.0
        self._trial_in_flight = False
        self.rejected = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def allow(self) -> bool:
        with self._lock:
            if self._state == CircuitState.closed:
                return True
            if self._state == CircuitState.open:
                if self._clock() - self._opened_at < self.delay_s:
                    self.rejected += 1
                    return False
                self._transition(CircuitState.half_open)
            if self._trial_in_flight:
                self.rejected += 1
                return False
            self._trial_in_flight = True
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.half_open:
                self._trial_in_flight = False
                self._window.clear()
                self._transition(CircuitState.closed)
                return
            self._window.append(False)

    def record_failure(self) -> None:
        with self._lock:
            if self._state == CircuitState.half_open:
                self._trial_in_flight = False
                self._open()
                return
            self._window.append(True)
            if len(self._window) >= self.volume_threshold:
                failures = sum(1 for f in self._window if f)
                if failures / len(self._window) >= self.failure_ratio:
                    self._open()

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        if not self.allow():
            raise CircuitOpenError(f"circuit '{self.name}' is open")
        try:
            result = fn(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def _open(self) -> None:
        self._opened_at = self._clock()
        self._window.clear()
        self._transition(CircuitState.open)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state != self._state:
            logger.info("circuit %s: %s -> %s", self.name, self._state.value, new_state.value)
            self._state = new_state


class BreakerRegistry:
    """One breaker per call type, created on first use with shared settings."""

    def __init__(
        self,
        volume_threshold: int = 10,
        failure_ratio: float = 0.5,
        delay_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.volume_threshold = volume_threshold
        self.failure_ratio = failure_ratio
        self.delay_s = delay_s
        self._clock = clock
        self._lock = Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, name: str) -> CircuitBreaker:
        with self._lock:
            cb = self._breakers.get(name)
            if cb is None:
                cb = CircuitBreaker(
                    name,
                    volume_threshold=self.volume_threshold,
                    failure_ratio=self.failure_ratio,
                    delay_s=self.delay_s,
                    clock=self._clock,
                )
                self._breakers[name] = cb
            return cb

    def states(self) -> dict[str, str]:
        with self._lock:
            return {name: cb.state.value for name, cb in self._breakers.items()}
