"""
Rate limiting and resource protection middleware for FastAPI.

This module provides:
- Per-client rate limiting (requests per minute), keyed on the bearer key
  when one is sent and on the client address otherwise
- Payload size enforcement

Usage:
    app.add_middleware(RateLimitingMiddleware)
"""

import hashlib
import threading
import time
from typing import Dict, List, Optional

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..settings import settings


class RateLimitConfig:
    """Configuration for rate limiting and resource protection."""

    def __init__(
        self,
        rate_limit_per_minute: Optional[int] = None,
        max_request_payload_mb: Optional[float] = None,
        window_seconds: int = 60,
        excluded_paths: Optional[List[str]] = None,
    ):
        # None means "use the configured default"; an explicit 0 is kept
        if rate_limit_per_minute is None:
            rate_limit_per_minute = settings.rate_limit_per_minute
        if max_request_payload_mb is None:
            max_request_payload_mb = settings.max_request_payload_mb
        self.rate_limit_per_minute = rate_limit_per_minute
        self.max_request_payload_mb = max_request_payload_mb
        self.window_seconds = window_seconds
        # Health and scrape traffic is never throttled
        self.excluded_paths = excluded_paths if excluded_paths is not None else ["/health", "/metrics"]

    @property
    def max_request_payload_bytes(self) -> int:
        return int(self.max_request_payload_mb * 1024 * 1024)


class InMemoryRateLimiter:
    """
    Sliding-window rate limiter (for single-instance deployment).
    Idle clients are swept out at most once per window.
    For distributed deployments, use Redis.
    """

    def __init__(self):
        self.requests: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.time()

    def is_allowed(self, client_id: str, limit: int, window_seconds: int = 60) -> bool:
        """Check if request is within rate limit, recording it if so."""
        now = time.time()
        window_start = now - window_seconds

        with self._lock:
            # Sweep idle clients at most once per window
            if now - self._last_sweep >= window_seconds:
                self._evict(window_start)
                self._last_sweep = now

            recent = [ts for ts in self.requests.get(client_id, []) if ts > window_start]
            if len(recent) >= limit:
                if recent:
                    self.requests[client_id] = recent
                else:
                    self.requests.pop(client_id, None)
                return False
            recent.append(now)
            self.requests[client_id] = recent
            return True

    def evict_stale(self, window_seconds: int = 60, now: Optional[float] = None) -> int:
        """Drop clients with no request inside the window. Returns how many were dropped."""
        window_start = (time.time() if now is None else now) - window_seconds
        with self._lock:
            return self._evict(window_start)

    def _evict(self, window_start: float) -> int:
        stale = [key for key, stamps in self.requests.items() if not stamps or max(stamps) <= window_start]
        for key in stale:
            del self.requests[key]
        return len(stale)

    def get_remaining(self, client_id: str, limit: int, window_seconds: int = 60) -> int:
        """Get remaining requests in the current window."""
        window_start = time.time() - window_seconds
        with self._lock:
            count = len([ts for ts in self.requests.get(client_id, []) if ts > window_start])
        return max(0, limit - count)

    def get_reset_time(self, client_id: str, window_seconds: int = 60) -> float:
        """Get the time when the oldest request in the window expires."""
        with self._lock:
            stamps = self.requests.get(client_id)
            if not stamps:
                return time.time()
            return min(stamps) + window_seconds


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce rate limits and payload size caps.

    Returns:
    - HTTP 429 Too Many Requests if rate limit exceeded
    - HTTP 413 Payload Too Large if payload exceeds limit
    """

    def __init__(self, app, config: Optional[RateLimitConfig] = None):
        super().__init__(app)
        self.limiter = InMemoryRateLimiter()
        self.config = config or RateLimitConfig()

    async def dispatch(self, request: Request, call_next):
        """Check rate limit and payload size before processing."""
        if any(request.url.path.startswith(p) for p in self.config.excluded_paths):
            return await call_next(request)

        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.headers.get("Content-Length")
            if content_length and content_length.isdigit():
                size_bytes = int(content_length)
                if size_bytes > self.config.max_request_payload_bytes:
                    return JSONResponse(
                        status_code=413,
                        content={
                            "status": "error",
                            "error": {
                                "code": "PAYLOAD_TOO_LARGE",
                                "message": f"Request payload exceeds {self.config.max_request_payload_mb} MB limit",
                                "limit_mb": self.config.max_request_payload_mb,
                                "received_mb": round(size_bytes / (1024 * 1024), 2),
                            }
                        }
                    )

        client_id = self._client_id(request)
        limit = self.config.rate_limit_per_minute
        window = self.config.window_seconds

        if not self.limiter.is_allowed(client_id, limit, window):
            remaining = self.limiter.get_remaining(client_id, limit, window)
            reset_time = self.limiter.get_reset_time(client_id, window)
            retry_after = max(1, int(reset_time - time.time()))

            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "status": "error",
                    "error": {
                        "code": "RATE_LIMIT_EXCEEDED",
                        "message": f"Rate limit of {limit} requests per minute exceeded",
                        "limit": limit,
                        "remaining": remaining,
                        "reset_at": reset_time,
                    }
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": str(remaining),
                    "X-RateLimit-Reset": str(int(reset_time)),
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.get_remaining(client_id, limit, window))
        response.headers["X-RateLimit-Reset"] = str(int(self.limiter.get_reset_time(client_id, window)))
        return response

    @staticmethod
    def _client_id(request: Request) -> str:
        """Hashed bearer key if present, else the client address."""
        parts = request.headers.get("Authorization", "").split()
        if len(parts) >= 2:
            return "key:" + hashlib.sha256(parts[1].encode()).hexdigest()[:12]
        host = request.client.host if request.client else "unknown"
        return f"host:{host}"
