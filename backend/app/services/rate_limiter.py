"""In-memory rate limiting for credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Iterable, Tuple

from app.core.exceptions import RateLimitExceededError

# (limit, window_seconds)
Window = Tuple[int, int]


class InMemoryRateLimiter:
    """Sliding-window limiter suitable for single-node deployments."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}

    def _prune(self, key: str, window_seconds: int, now: float) -> Deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            hits = self._prune(key, window_seconds, now)
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def enforce(self, scope: str, identity: str, windows: Iterable[Window]) -> None:
        """
        Count one attempt against every window.

        Raises:
            RateLimitExceededError: If any window is exhausted
        """
        for limit, window_seconds in windows:
            key = f"{scope}:{window_seconds}:{identity}"
            if not self.allow(key, limit, window_seconds):
                raise RateLimitExceededError()

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


rate_limiter = InMemoryRateLimiter()
