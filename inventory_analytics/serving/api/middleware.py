"""
API Middleware

Middleware for:
- Request logging with organization context
- Rate limiting per client address
- Security headers
"""

import time
import uuid
from typing import Callable, Dict, List
import asyncio

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from inventory_analytics.serving.api.dependencies import ORGANIZATION_HEADER

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with timing information"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        # Every log line emitted while handling the request carries these
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            organization_id=request.headers.get(ORGANIZATION_HEADER),
        )

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Simple in-memory rate limiter.

    Requests are counted per client address. The organization header is
    caller-supplied and never part of the key.
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 60,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _client_id(request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _prune(self, current_time: float) -> None:
        """Drop requests outside the window and forget idle clients"""
        for client_id in list(self._requests):
            recent = [
                t for t in self._requests[client_id]
                if current_time - t < self.window_seconds
            ]
            if recent:
                self._requests[client_id] = recent
            else:
                del self._requests[client_id]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_id = self._client_id(request)
        current_time = time.monotonic()

        async with self._lock:
            self._prune(current_time)
            history = self._requests.setdefault(client_id, [])

            if len(history) >= self.max_requests:
                logger.warning(
                    "Rate limit exceeded",
                    client=client_id,
                    requests=len(history),
                )
                return Response(
                    content='{"detail": "Rate limit exceeded"}',
                    status_code=429,
                    media_type="application/json",
                    headers={
                        "Retry-After": str(self.window_seconds),
                        "X-RateLimit-Limit": str(self.max_requests),
                        "X-RateLimit-Remaining": "0",
                    },
                )

            history.append(current_time)
            remaining = self.max_requests - len(history)

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Analytics responses are per organization and must not be shared
        response.headers.setdefault("Cache-Control", "private, no-store")

        return response
