# catalog/utils/rate_limit.py

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional


class SlidingWindowRateLimiter:
    def __init__(self,
                 max_requests: int = 10,
                 window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize a per-key sliding-window rate limiter.

        Args:
            max_requests: Requests allowed per key inside one window
            window_seconds: Window length in seconds
            clock: Monotonic clock, injectable for tests
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep: Optional[float] = None
        self._lock = threading.Lock()

    def _expire(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # Keys whose window ran out are dropped at most once per window
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._hits):
            self._expire(self._hits[key], now)
            if not self._hits[key]:
                del self._hits[key]

    def _prune(self, key: str, now: float) -> Deque[float]:
        self._sweep(now)
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        self._expire(hits, now)
        if not hits:
            del self._hits[key]
        return hits

    def is_allowed(self, key: str) -> bool:
        """Check whether another request fits in the window, without recording it"""
        with self._lock:
            return len(self._prune(key, self.clock())) < self.max_requests

    def retry_after(self, key: str) -> float:
        """Seconds until the oldest request leaves the window (0 if allowed now)"""
        with self._lock:
            now = self.clock()
            hits = self._prune(key, now)
            if len(hits) < self.max_requests:
                return 0.0
            return max(0.0, self.window_seconds - (now - hits[0]))

    def record(self, key: str) -> None:
        with self._lock:
            now = self.clock()
            self._prune(key, now)
            self._hits.setdefault(key, deque()).append(now)

    def reset(self, key: str = None) -> None:
        """Forget recorded requests for one key, or for every key"""
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


_limiters: Dict[str, SlidingWindowRateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(name: str, max_requests: int, window_seconds: float) -> SlidingWindowRateLimiter:
    """Get the process-wide limiter registered under name, creating it on first use"""
    with _limiters_lock:
        limiter = _limiters.get(name)
        if limiter is None:
            limiter = SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=window_seconds)
            _limiters[name] = limiter
        return limiter
