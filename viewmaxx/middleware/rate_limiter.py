"""In-memory sliding window rate limiter keyed by client IP."""

import time
from collections import defaultdict, deque

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from viewmaxx.config.settings import Settings

EXEMPT_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class RateLimiterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self._limit = settings.RATE_LIMIT_MAX_REQUESTS
        self._window = float(settings.RATE_LIMIT_WINDOW_SECONDS)
        # client ip -> request timestamps inside the window
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    def _check_limit(self, window: deque[float], now: float) -> tuple[bool, int]:
        """Drop expired entries, check if under limit. Returns (allowed, retry_after_seconds)."""
        cutoff = now - self._window
        while window and window[0] < cutoff:
            window.popleft()

        if len(window) >= self._limit:
            retry_after = int(window[0] - cutoff) + 1
            return False, retry_after

        window.append(now)
        return True, 0

    def _evict_idle(self, now: float) -> None:
        """Forget clients with no request inside the window."""
        cutoff = now - self._window
        idle = [ip for ip, window in self._windows.items() if not window or window[-1] < cutoff]
        for ip in idle:
            del self._windows[ip]
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        now = time.monotonic()
        if now - self._last_sweep >= self._window:
            self._evict_idle(now)

        client_ip = request.client.host if request.client else "unknown"
        window = self._windows[client_ip]
        allowed, retry_after = self._check_limit(window, now)
        if not window:
            # A zero limit never records anything
            del self._windows[client_ip]
        if not allowed:
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": "Too many requests from this IP, please try again later."},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
