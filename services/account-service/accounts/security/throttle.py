"""In-memory failed-login throttle."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Deque, DefaultDict


class LoginThrottle:
    """Thread-safe sliding window over failed login attempts per key.

    Keys whose newest failure has left the window are swept at most once per
    window, so addresses tried only once do not accumulate.
    """

    def __init__(self, max_failures: int, window_seconds: int) -> None:
        """Initialise limiter parameters and per-key storage."""
        self._max_failures = max_failures
        self._window = window_seconds
        self._failures: DefaultDict[str, Deque[float]] = DefaultDict(deque)
        self._lock = Lock()
        self._last_sweep = time.time()

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)

    def _prune(self, queue: Deque[float], now: float) -> None:
        while queue and now - queue[0] > self._window:
            queue.popleft()

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._window:
            return
        self._last_sweep = now
        stale = [
            key
            for key, queue in self._failures.items()
            if not queue or now - queue[-1] > self._window
        ]
        for key in stale:
            del self._failures[key]

    def is_blocked(self, key: str) -> bool:
        """Return ``True`` once the key has too many recent failures."""
        now = time.time()
        with self._lock:
            self._sweep(now)
            queue = self._failures.get(key)
            if not queue:
                return False
            self._prune(queue, now)
            if not queue:
                del self._failures[key]
                return False
            return len(queue) >= self._max_failures

    def record_failure(self, key: str) -> None:
        now = time.time()
        with self._lock:
            self._sweep(now)
            queue = self._failures[key]
            self._prune(queue, now)
            queue.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)
