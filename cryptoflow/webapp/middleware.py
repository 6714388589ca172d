"""
FastAPI middleware for rate limiting.

Per-client sliding windows, with a tighter limit for order creation.
State lives on the middleware instance, so every app gets its own.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

ORDER_CREATE_KEY = "order-create"


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    enabled: bool = True
    # General API limit (requests per window_seconds)
    api_rpm: int = 100
    window_seconds: int = 60
    # Order creation limit (requests per order_window_seconds)
    order_limit: int = 3
    order_window_seconds: int = 300


class RateLimitState:
    """Tracks request timestamps per client and bucket."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.requests: dict[str, dict[str, list[float]]] = defaultdict(lambda: defaultdict(list))
        self._clock = clock

    def record_request(self, client_id: str, bucket: str) -> None:
        self.requests[client_id][bucket].append(self._clock())

    def get_request_count(self, client_id: str, bucket: str, window_seconds: int) -> int:
        """Get the number of requests in the time window."""
        cutoff = self._clock() - window_seconds

        timestamps = [t for t in self.requests[client_id][bucket] if t > cutoff]
        self.requests[client_id][bucket] = timestamps
        return len(timestamps)

    def cleanup(self, max_age_seconds: int = 300) -> None:
        """Remove old entries to prevent memory growth."""
        cutoff = self._clock() - max_age_seconds

        for client_id in list(self.requests.keys()):
            for bucket in list(self.requests[client_id].keys()):
                self.requests[client_id][bucket] = [
                    t for t in self.requests[client_id][bucket] if t > cutoff
                ]
                if not self.requests[client_id][bucket]:
                    del self.requests[client_id][bucket]
            if not self.requests[client_id]:
                del self.requests[client_id]


def get_client_id(request: Request) -> str:
    """Extract client identifier from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_bucket(request: Request, config: RateLimitConfig) -> tuple[str, int, int] | None:
    """
    Rate limit bucket for a request.

    Returns:
        (bucket, limit, window_seconds), or None when the path is not limited.
    """
    path = request.url.path
    if request.method == "POST" and path == "/api/orders":
        return ORDER_CREATE_KEY, config.order_limit, config.order_window_seconds
    if path.startswith("/api/"):
        return "api", config.api_rpm, config.window_seconds
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware for rate limiting requests."""

    def __init__(self, app, config: RateLimitConfig | None = None):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.state = RateLimitState()
        self._last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        if not self.config.enabled:
            return await call_next(request)

        bucket = get_bucket(request, self.config)
        if bucket is None:
            return await call_next(request)
        name, limit, window = bucket

        if time.time() - self._last_cleanup > 60:
            self.state.cleanup(max_age_seconds=max(window, self.config.order_window_seconds))
            self._last_cleanup = time.time()

        client_id = get_client_id(request)
        current_count = self.state.get_request_count(client_id, name, window)

        if current_count >= limit:
            logger.warning(
                f"Rate limit exceeded: client={client_id}, bucket={name}, "
                f"count={current_count}, limit={limit}"
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests",
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window} seconds.",
                    "retry_after_seconds": window,
                },
                headers={
                    "Retry-After": str(window),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        self.state.record_request(client_id, name)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count - 1))

        return response
