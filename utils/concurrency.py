"""Thread-safe primitives used across the project."""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Optional

from utils.exceptions import RateLimitTimeout
from utils.log_config import get_logger

log = get_logger(__name__)

# Put on a queue once per consumer to signal that nothing else will follow.
CLOSED = object()


def close_queue(q: queue.Queue, consumers: int = 1) -> None:
    for _ in range(consumers):
        q.put(CLOSED)


class AtomicCounter:
    """Thread-safe integer counter."""

    def __init__(self, initial: int = 0) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


class RateLimiter:
    """
    Token-bucket rate limiter shared across threads.

    The bucket refills at *rate* tokens per second up to *burst* tokens.
    ``wait()`` reserves a token under the lock and sleeps outside it, so
    thousands of waiting threads never serialise on the sleep itself.
    """

    def __init__(self, rate: float, burst: Optional[int] = None) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self._rate = float(rate)
        self._burst = burst if burst is not None else max(1, int(rate))
        self._tokens = float(self._burst)
        self._updated = time.monotonic()
        self._lock = threading.Lock()

    def _reserve(self, timeout: Optional[float]) -> float:
        with self._lock:
            now = time.monotonic()
            self._tokens = min(
                float(self._burst),
                self._tokens + (now - self._updated) * self._rate,
            )
            self._updated = now

            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0

            delay = (1.0 - self._tokens) / self._rate
            if timeout is not None and delay > timeout:
                raise RateLimitTimeout(
                    f"token not available within {timeout:.3f}s (needs {delay:.3f}s)"
                )
            self._tokens -= 1.0
            return delay

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until a token is available or raise ``RateLimitTimeout``."""
        delay = self._reserve(timeout)
        if delay > 0:
            time.sleep(delay)


class QuotaGate:
    """
    Upper bound on successful saves.

    ``admit()`` runs the write, the increment and the publish under one
    lock, so no two callers can both observe ``count < target`` and push
    the count past it. *cancel* is set exactly once, when the count first
    reaches the target (immediately for a zero target).

    ``close()`` refuses every later write; once it returns nothing more
    can be published.
    """

    def __init__(self, target: int, cancel: Optional[threading.Event] = None) -> None:
        if target < 0:
            raise ValueError("target must be >= 0")
        self.target = target
        self.cancel = cancel if cancel is not None else threading.Event()
        self._count = 0
        self._closed = False
        self._lock = threading.Lock()
        if target == 0:
            self.cancel.set()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self.cancel.set()

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def admit(
        self,
        write: Callable[[], None],
        publish: Optional[Callable[[int], None]] = None,
    ) -> bool:
        """
        Run *write* if the quota is not yet met.

        Returns ``False`` without calling *write* once the target is
        reached or the gate is closed. Exceptions from *write* propagate
        and leave the count untouched. *publish* receives the new count
        before the cancel event fires.
        """
        with self._lock:
            if self._closed or self._count >= self.target:
                return False
            write()
            self._count += 1
            if publish is not None:
                publish(self._count)
            if self._count == self.target:
                log.info("Quota of %d images reached", self.target)
                self.cancel.set()
            return True
