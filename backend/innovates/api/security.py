"""
Security API Endpoints
CSRF token issue for the public forms
"""
from fastapi import APIRouter, Response

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, to_http_exception
from innovates.core.security import CSRF_COOKIE_NAME, generate_csrf_token

router = APIRouter()


@router.get("/csrf-token")
async def get_csrf_token(response: Response):
    """
    Issue a CSRF token

    The token is returned in the body and set as a cookie; form posts send
    it back in the X-CSRF-Token header (double-submit).
    """
    try:
        token = generate_csrf_token()
    except ConfigurationError as e:
        raise to_http_exception(e)

    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        max_age=settings.CSRF_MAX_AGE_SECONDS,
        httponly=False,
        secure=not settings.API_DEBUG,
        samesite="strict",
    )
    return {"csrf_token": token, "expires_in": settings.CSRF_MAX_AGE_SECONDS}
