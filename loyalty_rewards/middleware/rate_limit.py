"""
Fixed window request limiter.

Requests are counted per client address in buckets of ``window`` seconds;
a client past ``limit`` requests in the current bucket gets a 429 until the
bucket rolls over.
"""

import logging
import threading
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from loyalty_rewards.errors import error_body


logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    def __init__(self, limit: int, window: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._counts: dict[tuple[str, int], int] = {}
        self._lock = threading.Lock()

    def _window_start(self, now: float) -> int:
        return int(now // self.window) * self.window

    def hit(self, identifier: str) -> tuple[bool, int, int]:
        """Count one request. Returns (allowed, remaining, seconds until reset)."""
        now = self._clock()
        window_start = self._window_start(now)
        reset_in = max(1, int(window_start + self.window - now))

        with self._lock:
            # Only the current bucket matters.
            for key in [k for k in self._counts if k[1] != window_start]:
                del self._counts[key]

            key = (identifier, window_start)
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count

        allowed = count <= self.limit
        return allowed, max(0, self.limit - count), reset_in


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: FixedWindowRateLimiter, exempt_paths: Optional[set[str]] = None):
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = exempt_paths or set()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client = request.client.host if request.client else "anonymous"
        allowed, remaining, reset_in = self.limiter.hit(client)

        if not allowed:
            logger.warning("rate limit exceeded", extra={"client": client, "path": request.url.path})
            return JSONResponse(
                status_code=429,
                content=error_body(429, "Too many requests, please try again later", "RATE_LIMITED"),
                headers={
                    "Retry-After": str(reset_in),
                    "X-RateLimit-Limit": str(self.limiter.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
