"""
Purpose: Pacing for batch assignment.
What it does:
A token bucket: `rate` tokens per second refill a bucket holding at most
`capacity` tokens. Each trip in a batch takes one token, sleeping until one
is available. rate=10, capacity=1 reproduces a fixed 100 ms gap between
trips; a larger capacity lets short bursts through while keeping the same
sustained throughput.

Clock and sleep are injectable so tests never wait on real time.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

# float slack so a refill of exactly one token always counts
_TOKEN_EPSILON = 1e-9


class TokenBucket:
    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self.rate = float(rate)
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated_at = now

    def try_acquire(self) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= 1.0 - _TOKEN_EPSILON:
                self._tokens -= 1.0
                return True
            return False

    def acquire(self) -> float:
        """
        Blocks until a token is available. Returns the seconds spent waiting.
        """
        waited = 0.0
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1.0 - _TOKEN_EPSILON:
                    self._tokens -= 1.0
                    return waited
                wait = max(0.0, 1.0 - self._tokens) / self.rate
            self._sleep(wait)
            waited += wait
