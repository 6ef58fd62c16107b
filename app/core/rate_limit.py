"""
Rate limiting middleware

In-memory sliding window limiter keyed by client IP.
Limits come from THROTTLE_TTL (seconds) and THROTTLE_LIMIT (requests).
"""
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    State lives in the process; each worker counts on its own.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, cleanup_interval: int = 60):
        # {identifier: [timestamp, ...]}
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = clock()

    def _cleanup_old_entries(self, window_seconds: int) -> None:
        """Drop identifiers with no request inside the window."""
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds
        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [ts for ts in self._requests[identifier] if ts > cutoff]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = self._clock()
        window_start = now - window_seconds

        in_window = [ts for ts in self._requests[identifier] if ts > window_start]
        self._requests[identifier] = in_window

        if len(in_window) >= max_requests:
            # Oldest request leaving the window frees the next slot
            retry_after = int(in_window[0] + window_seconds - now) + 1
            return False, 0, max(retry_after, 1)

        in_window.append(now)
        return True, max_requests - len(in_window), 0

    def reset(self) -> None:
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that caps requests per client IP.

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset / Retry-After: Seconds until a slot frees (when limited)
    """

    def __init__(
        self,
        app: ASGIApp,
        limit: int = 120,
        window_seconds: int = 60,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        super().__init__(app)
        self.limit = limit
        self.window_seconds = window_seconds
        self.limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next):
        # CORS preflight is not counted
        if request.method == "OPTIONS":
            return await call_next(request)

        identifier = f"ip:{get_client_ip(request)}"
        is_allowed, remaining, retry_after = self.limiter.is_allowed(
            identifier=identifier,
            max_requests=self.limit,
            window_seconds=self.window_seconds,
        )

        if not is_allowed:
            # Returned rather than raised so the outer middleware still decorates it
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers={
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
