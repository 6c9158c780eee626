"""Outer per-request deadline.

Wraps authenticate -> authorize -> handle so a stalled dependency turns
into a 504 instead of a hung connection.
"""

import asyncio
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request has not produced a response in time."""

    def __init__(
        self,
        app: ASGIApp,
        timeout_seconds: float = 25.0,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path == p or path.startswith(p + "/") for p in self.exclude_paths):
            return await call_next(request)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call_next(request)
        except TimeoutError:
            logger.warning(
                f"Request exceeded {self.timeout_seconds}s: {request.method} {path}"
            )
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": "Request took too long to process"},
            )
