"""
Rate limiting for America Innovates Backend

- RateLimiter / RateLimitMiddleware: per-minute sliding window for every API request
- AttemptLimiter: coarse limits on sensitive actions (form submissions, newsletter
  signups, admin actions), 5 attempts per 15 minutes by default

Both use in-memory storage.
"""
import time
import hashlib
from typing import Dict, Optional, Tuple
from collections import defaultdict

from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    For production with multiple instances, consider using Redis.
    """

    def __init__(self):
        # {identifier: [(timestamp, count), ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int = 60):
        """Remove entries older than the largest window we care about"""
        now = time.time()

        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [
                (ts, count) for ts, count in self._requests[identifier]
                if ts > cutoff
            ]
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

        now = time.time()
        window_start = now - window_seconds

        requests_in_window = [
            (ts, count) for ts, count in self._requests[identifier]
            if ts > window_start
        ]

        total_requests = sum(count for _, count in requests_in_window)

        if total_requests >= max_requests:
            if requests_in_window:
                oldest_timestamp = min(ts for ts, _ in requests_in_window)
                retry_after = int(oldest_timestamp + window_seconds - now) + 1
            else:
                retry_after = 1

            return False, 0, retry_after

        self._requests[identifier].append((now, 1))

        remaining = max_requests - total_requests - 1
        return True, remaining, 0

    def reset(self, identifier: Optional[str] = None):
        """Forget one identifier's requests, or every identifier when none is given"""
        if identifier is None:
            self._requests.clear()
        else:
            self._requests.pop(identifier, None)


class AttemptLimiter:
    """
    Fixed attempt counter for sensitive actions.

    A key gets max_attempts tries; the window restarts once window_seconds
    have passed since the last attempt.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: int = 15 * 60):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        # {key: (count, last_attempt_timestamp)}
        self._attempts: Dict[str, Tuple[int, float]] = {}

    def check(self, key: str) -> Tuple[bool, int, float]:
        """
        Register an attempt for key.

        Returns:
            Tuple of (allowed, remaining_attempts, reset_time) where reset_time
            is a unix timestamp
        """
        now = time.time()
        record = self._attempts.get(key)

        if record is None or now - record[1] > self.window_seconds:
            self._attempts[key] = (1, now)
            return True, self.max_attempts - 1, now + self.window_seconds

        count, last_attempt = record
        if count >= self.max_attempts:
            return False, 0, last_attempt + self.window_seconds

        count += 1
        self._attempts[key] = (count, now)
        return True, self.max_attempts - count, now + self.window_seconds

    def reset(self, key: str):
        self._attempts.pop(key, None)

    def clear(self):
        self._attempts.clear()


# Global limiter instances
rate_limiter = RateLimiter()
submission_limiter = AttemptLimiter()
newsletter_limiter = AttemptLimiter()
admin_action_limiter = AttemptLimiter(max_attempts=30)
invite_limiter = AttemptLimiter(max_attempts=10)


# Requests per minute
RATE_LIMITS = {
    "authenticated": 600,
    "unauthenticated": 120,
}

# Paths that are exempt from rate limiting
EXEMPT_PATHS = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/v1/newsletters/track/open",
    "/api/v1/newsletters/track/click",
    "/api/v1/payments/stripe/webhook",
}


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that applies rate limiting based on authentication status.

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset: Seconds until the window resets (when limited)
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        identifier, limit = self._get_identifier_and_limit(request)

        is_allowed, remaining, retry_after = rate_limiter.is_allowed(
            identifier=identifier,
            max_requests=limit,
            window_seconds=60
        )

        if not is_allowed:
            # JSONResponse instead of HTTPException so CORS headers are still applied
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response

    def _get_identifier_and_limit(self, request: Request) -> Tuple[str, int]:
        """
        Priority:
        1. Supabase JWT (Authorization: Bearer header)
        2. IP address (unauthenticated)
        """
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token_hash = hashlib.sha256(auth_header.encode()).hexdigest()[:32]
            return f"jwt:{token_hash}", RATE_LIMITS["authenticated"]

        return f"ip:{get_client_ip(request)}", RATE_LIMITS["unauthenticated"]


def limit_attempts(limiter: AttemptLimiter, scope: str):
    """
    Dependency factory applying an AttemptLimiter per client IP.

    Usage:
        @router.post("/subscribe")
        async def subscribe(_: None = Depends(limit_attempts(newsletter_limiter, "newsletter"))):
            ...
    """
    async def checker(request: Request):
        key = f"{scope}:{get_client_ip(request)}"
        allowed, remaining, reset_time = limiter.check(key)
        if not allowed:
            retry_after = max(int(reset_time - time.time()), 1)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many attempts. Try again in {retry_after // 60 + 1} minutes.",
                headers={
                    "X-RateLimit-Limit": str(limiter.max_attempts),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(retry_after),
                }
            )

    return checker
