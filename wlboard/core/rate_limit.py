# wlboard/core/rate_limit.py
"""Per-client sliding-window rate limiting."""

import time
from threading import Lock
from typing import Callable

from fastapi import Request


class RateLimiter:
    """
    Sliding-window limiter keyed by client (IP address).

    Each key keeps the timestamps of its recent hits; hits older than
    `window_seconds` are dropped before counting. Keys with no hits left
    in the window are removed, at most once per window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: dict[str, list[float]] = {}
        self._last_sweep = clock()
        self.lock = Lock()

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: str) -> bool:
        """
        Record one request for `key`.

        Returns:
            True if the request is allowed, False if the limit is exceeded
            (rejected hits are not recorded).
        """
        now = self.clock()
        cutoff = now - self.window_seconds
        with self.lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = [t for t in self._hits.get(key, ()) if t > cutoff]
            if len(hits) >= self.max_requests:
                self._store(key, hits)
                return False
            hits.append(now)
            self._hits[key] = hits
            return True

    def _store(self, key: str, hits: list[float]) -> None:
        if hits:
            self._hits[key] = hits
        else:
            self._hits.pop(key, None)

    def _sweep(self, cutoff: float) -> None:
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        with self.lock:
            self._hits.clear()


def client_key(request: Request) -> str:
    """Best-effort client identifier for rate limiting."""
    if request.client is not None:
        return request.client.host
    return "unknown"
