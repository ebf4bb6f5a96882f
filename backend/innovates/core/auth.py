"""
Authentication for America Innovates Backend
Validates Supabase access tokens and provides user context
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from .config import settings


# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

SUPABASE_JWT_ALGORITHM = "HS256"
SUPABASE_JWT_AUDIENCE = "authenticated"


class TokenUser(BaseModel):
    """User data extracted from a Supabase JWT"""
    id: str
    email: str
    name: Optional[str] = None
    role: str = "user"


def decode_supabase_token(token: str) -> dict:
    """
    Decode and validate a Supabase access token.

    Supabase JWT structure:
    {
        "sub": "user uuid",
        "email": "jane@example.com",
        "aud": "authenticated",
        "role": "authenticated",
        "app_metadata": {"provider": "email", "role": "admin"},
        "user_metadata": {"full_name": "Jane Doe"},
        "exp": 1234567890
    }
    """
    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="SUPABASE_JWT_SECRET is not configured"
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[SUPABASE_JWT_ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def _user_from_payload(payload: dict) -> Optional[TokenUser]:
    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        return None

    app_metadata = payload.get("app_metadata") or {}
    user_metadata = payload.get("user_metadata") or {}

    return TokenUser(
        id=user_id,
        email=email,
        name=user_metadata.get("full_name") or user_metadata.get("name"),
        role=app_metadata.get("role", "user"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_supabase_token(credentials.credentials)
    user = _user_from_payload(payload)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id or email",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """Optional authentication - returns None if no valid token provided."""
    if not credentials:
        return None

    try:
        payload = decode_supabase_token(credentials.credentials)
    except HTTPException:
        return None

    return _user_from_payload(payload)


def is_admin(user: TokenUser) -> bool:
    """Admins are flagged in app_metadata or listed in the user_roles table"""
    if user.role == "admin":
        return True

    from innovates.repositories.user_role_repository import UserRoleRepository
    return UserRoleRepository().has_role(user.id, "admin")


async def require_admin(user: TokenUser = Depends(get_current_user)) -> TokenUser:
    """
    Dependency restricting a route to administrators.

    Usage:
        @router.post("/{submission_id}/approve")
        async def approve(submission_id: str, admin: TokenUser = Depends(require_admin)):
            ...
    """
    if not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Administrator role required"
        )
    return user.model_copy(update={"role": "admin"})
