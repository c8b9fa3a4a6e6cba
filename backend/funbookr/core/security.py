"""
JWT bearer authentication.

Token issuance lives in the identity service; this module only verifies
tokens and exposes the authenticated user id and role to route handlers.
The ``role`` claim is one of customer, activity_provider or admin.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from funbookr.core.clock import utcnow
from funbookr.core.config import get_settings

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)

CUSTOMER = "customer"
ACTIVITY_PROVIDER = "activity_provider"
ADMIN = "admin"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Decoded claims of a valid bearer token with a UUID subject, or 401."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    try:
        payload = decode_access_token(credentials.credentials)
        subject = payload.get("sub")
        if subject is None:
            raise unauthorized
        UUID(subject)
    except (JWTError, ValueError):
        raise unauthorized
    return payload


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> UUID:
    """Resolve the user id from the Authorization header or fail with 401."""
    return UUID(payload["sub"])


def role_of(payload: dict) -> str:
    """Role claim of a token; tokens without one belong to customers."""
    return str(payload.get("role") or CUSTOMER).lower()


def require_role(*roles: str):
    """
    Dependency that admits only tokens carrying one of ``roles``.

    Returns the caller's user id, so it replaces get_current_user_id on
    routes reserved for providers or administrators.
    """
    allowed = {role.lower() for role in roles}

    async def role_checker(payload: dict = Depends(get_token_payload)) -> UUID:
        if role_of(payload) not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User lacks required role(s): {', '.join(sorted(allowed))}",
            )
        return UUID(payload["sub"])

    return role_checker
