"""Per-client-IP request limiting for the HTTP API.

Fixed window per IP: the first request opens a window of ``window_seconds``;
up to ``max_requests`` are admitted inside it, the rest get 429 until it
expires.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response

logger = logging.getLogger(__name__)

# Expired entries are swept once the table grows past this many IPs.
PRUNE_THRESHOLD = 1000


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, ip: str) -> bool:
        """Count one request from ``ip``; return False if it is over the limit."""
        now = self._clock()
        with self._lock:
            if len(self._windows) > PRUNE_THRESHOLD:
                self._windows = {k: w for k, w in self._windows.items() if w.reset_at > now}

            window = self._windows.get(ip)
            if window is None or now > window.reset_at:
                self._windows[ip] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count < self.max_requests:
                window.count += 1
                return True
            return False

    def retry_after(self, ip: str) -> float | None:
        with self._lock:
            window = self._windows.get(ip)
        if window is None:
            return None
        return max(0.0, window.reset_at - self._clock())

    def __len__(self) -> int:
        return len(self._windows)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_middleware(limiter: RateLimiter):
    """Build an ``@app.middleware("http")`` handler backed by ``limiter``."""

    async def _middleware(request: Request, call_next) -> Response:
        ip = client_ip(request)
        if limiter.check(ip):
            return await call_next(request)

        remaining = limiter.retry_after(ip)
        retry_after = math.ceil(remaining) if remaining is not None else int(limiter.window_seconds)
        logger.warning("Rate limit exceeded for IP: %s", ip)
        return PlainTextResponse(
            "Rate limit exceeded. Please try again later.",
            status_code=429,
            headers={"Retry-After": str(retry_after)},
        )

    return _middleware
