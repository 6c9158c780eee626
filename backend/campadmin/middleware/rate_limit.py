"""Rate limiting middleware for API protection."""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from campadmin.core.request_utils import get_client_address

logger = logging.getLogger(__name__)

# "Rate limit exceeded" warnings are emitted at most this often
EXCEEDED_LOG_INTERVAL_SECONDS = 5.0


@dataclass
class WindowSample:
    """Requests admitted at one instant."""

    timestamp: float
    count: int = 1


@dataclass
class ClientWindow:
    """Sliding-window state for a single client address."""

    samples: list[WindowSample] = field(default_factory=list)
    limit: int = 0  # last limit supplied for this address


class RateLimiter:
    """In-memory sliding-window rate limiter keyed by client address.

    Strictly per process: there is no coordination between instances.
    All state lives on the instance so tests can build isolated limiters
    with a fake clock.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, ClientWindow] = {}
        self._lock = asyncio.Lock()
        self._last_exceeded_log = -math.inf

    def _purge(self, window: ClientWindow, now: float) -> None:
        cutoff = now - self.window_seconds
        window.samples = [s for s in window.samples if s.timestamp > cutoff]

    async def allow(self, client_address: str, limit_per_window: int) -> bool:
        """Admit or reject one request from ``client_address``.

        A rejected request is not recorded. Internal errors admit the
        request: a limiter bug must not block legitimate traffic.
        """
        try:
            async with self._lock:
                # No awaits below: purge -> sum -> compare -> append is atomic
                now = self._clock()
                window = self._windows.get(client_address)
                if window is None:
                    window = self._windows[client_address] = ClientWindow()
                window.limit = limit_per_window

                self._purge(window, now)
                in_window = sum(s.count for s in window.samples)

                if in_window >= limit_per_window:
                    self._log_exceeded(client_address, now)
                    return False

                window.samples.append(WindowSample(timestamp=now))
                return True
        except Exception:
            logger.exception(f"Rate limiter error for {client_address}; allowing request")
            return True

    def _log_exceeded(self, client_address: str, now: float) -> None:
        if now - self._last_exceeded_log > EXCEEDED_LOG_INTERVAL_SECONDS:
            logger.warning(
                f"Rate limit exceeded for {client_address}",
                extra={"client_ip": client_address},
            )
            self._last_exceeded_log = now

    async def retry_after(self, client_address: str) -> int:
        """Seconds until the oldest sample for ``client_address`` leaves the window."""
        async with self._lock:
            window = self._windows.get(client_address)
            if window is None or not window.samples:
                return 1
            oldest = window.samples[0].timestamp
            return max(1, math.ceil(self.window_seconds - (self._clock() - oldest)))

    async def sweep(self) -> int:
        """Drop stale samples everywhere and forget idle addresses.

        Returns:
            Number of addresses removed
        """
        async with self._lock:
            now = self._clock()
            removed = []
            for address, window in self._windows.items():
                self._purge(window, now)
                if not window.samples:
                    removed.append(address)
            for address in removed:
                del self._windows[address]

        return len(removed)

    async def get_stats(self) -> dict[str, dict[str, int]]:
        """Get current per-address counts."""
        async with self._lock:
            return {
                address: {
                    "count": sum(s.count for s in window.samples),
                    "limit": window.limit,
                }
                for address, window in self._windows.items()
            }

    async def reset(self, client_address: str | None = None) -> None:
        """Reset rate limit counters for one address, or all of them."""
        async with self._lock:
            if client_address:
                self._windows.pop(client_address, None)
            else:
                self._windows.clear()


@dataclass
class PathRateLimit:
    """Requests allowed per window for a path prefix."""

    prefix: str
    limit_per_window: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware with per-path limits.

    The limiter is keyed by client address only; the limit applied is the
    one configured for the request's path. When one address hits routes
    with different limits inside a window the most recent limit wins.
    """

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: RateLimiter,
        default_limit: int = 60,
        path_limits: list[PathRateLimit] | None = None,
        exclude_paths: list[str] | None = None,
        trust_forwarded_headers: bool = True,
        trusted_proxy_ips: set[str] | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.rate_limiter = rate_limiter
        self.default_limit = default_limit
        # Longest prefix first so /auth/login beats /auth
        self.path_limits = sorted(path_limits or [], key=lambda p: len(p.prefix), reverse=True)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]
        self.trust_forwarded_headers = trust_forwarded_headers
        self.trusted_proxy_ips = trusted_proxy_ips or set()
        self.enabled = enabled

    def get_limit_for_path(self, path: str) -> int:
        for path_limit in self.path_limits:
            if path == path_limit.prefix or path.startswith(path_limit.prefix + "/"):
                return path_limit.limit_per_window
        return self.default_limit

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request with rate limiting."""
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if any(path == p or path.startswith(p + "/") for p in self.exclude_paths):
            return await call_next(request)

        client_address = get_client_address(
            request,
            trust_forwarded_headers=self.trust_forwarded_headers,
            trusted_proxy_ips=self.trusted_proxy_ips,
        )
        limit = self.get_limit_for_path(path)

        if not await self.rate_limiter.allow(client_address, limit):
            retry_after = await self.rate_limiter.retry_after(client_address)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded. Please try again later.",
                    "retry_after": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        return response
