"""
HTTP middlewares: per-client rate limiting and baseline security headers.
"""
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add conservative security headers to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window request limit per client address.

    Protects both this service and the provider quota. A max_requests of 0
    disables the limiter.
    """

    def __init__(
        self,
        app,
        window_ms: int = 60000,
        max_requests: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.window_seconds = window_ms / 1000.0
        self.max_requests = max_requests
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_purge = clock()

    def _client_key(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _hit(self, key: str) -> Tuple[bool, int]:
        now = self._clock()
        if now - self._last_purge >= self.window_seconds:
            # drop stale windows so one-off clients do not accumulate
            self._windows = {
                k: v for k, v in self._windows.items() if now - v[0] < self.window_seconds
            }
            self._last_purge = now
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests, count

    async def dispatch(self, request: Request, call_next):
        if self.max_requests <= 0:
            return await call_next(request)
        key = self._client_key(request)
        allowed, count = self._hit(key)
        if not allowed:
            logger.info("rate limit exceeded for %s (%d requests)", key, count)
            return JSONResponse(status_code=429, content={"error": "too_many_requests"})
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(self.max_requests - count, 0))
        return response
