"""
CSRF protection and security headers

CSRF tokens are "<nonce>.<timestamp>.<signature>" where the signature is an
HMAC-SHA256 of nonce and timestamp with CSRF_SECRET. The token is handed to
the browser both in the response body and as a cookie; state-changing public
endpoints require the X-CSRF-Token header to match the cookie.
"""
import hmac
import time
import hashlib
import secrets
import logging
from typing import Optional

from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .exceptions import ConfigurationError, to_http_exception

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"


CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline' 'unsafe-eval' https://js.stripe.com https://www.paypal.com "
    "https://www.googletagmanager.com https://pagead2.googlesyndication.com https://ep2.adtrafficquality.google",
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
    "font-src 'self' https://fonts.gstatic.com",
    "img-src 'self' data: https: blob:",
    "connect-src 'self' https://*.supabase.co https://api.openai.com https://api.stripe.com "
    "https://www.paypal.com https://www.google-analytics.com",
    "frame-src 'self' https://js.stripe.com https://www.paypal.com https://googleads.g.doubleclick.net "
    "https://tpc.googlesyndication.com",
    "object-src 'none'",
    "base-uri 'self'",
])

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
}


def _sign(message: str) -> str:
    if not settings.CSRF_SECRET:
        raise ConfigurationError("CSRF protection not configured. Set CSRF_SECRET")
    return hmac.new(
        settings.CSRF_SECRET.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()


def generate_csrf_token(now: Optional[float] = None) -> str:
    """Create a new signed, timestamped CSRF token"""
    timestamp = int(now if now is not None else time.time())
    nonce = secrets.token_urlsafe(16)
    message = f"{nonce}.{timestamp}"
    return f"{message}.{_sign(message)}"


def validate_csrf_token(token: Optional[str], now: Optional[float] = None) -> bool:
    """Check signature and age of a CSRF token"""
    if not token:
        return False

    parts = token.split(".")
    if len(parts) != 3:
        return False

    nonce, timestamp, signature = parts
    if not hmac.compare_digest(_sign(f"{nonce}.{timestamp}"), signature):
        return False

    try:
        issued_at = int(timestamp)
    except ValueError:
        return False

    current = now if now is not None else time.time()
    age = current - issued_at
    return 0 <= age <= settings.CSRF_MAX_AGE_SECONDS


async def require_csrf(request: Request):
    """
    Dependency for public form endpoints.

    Usage:
        @router.post("", dependencies=[Depends(require_csrf)])
    """
    header_token = request.headers.get(CSRF_HEADER_NAME)
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)

    if not header_token or not cookie_token or not hmac.compare_digest(header_token, cookie_token):
        logger.warning(f"CSRF token missing or mismatched for {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="CSRF token missing"
        )

    try:
        valid = validate_csrf_token(header_token)
    except ConfigurationError as e:
        raise to_http_exception(e)

    if not valid:
        logger.warning(f"Invalid or expired CSRF token for {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="CSRF token invalid or expired"
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the browser hardening headers to every response"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response
