"""
Authentication for API requests.

Verifies the Supabase access token sent as ``Authorization: Bearer <jwt>``
and yields the caller's identity. Any failure is an ``UnauthorizedError``.
"""

import logging

import jwt
from fastapi import Depends, Header
from pydantic import BaseModel

from .config import Settings, get_settings
from .exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Verified identity of the caller."""

    id: str
    email: str | None = None
    role: str = "authenticated"


def verify_token(token: str, settings: Settings) -> CurrentUser:
    """
    Decode and verify an HS256 Supabase access token.

    Raises:
        UnauthorizedError: If the token is missing claims, expired or forged.
    """
    if not settings.supabase_jwt_secret:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting request")
        raise UnauthorizedError("Unauthorized")

    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
            options={"require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected access token: %s", e)
        raise UnauthorizedError("Unauthorized") from e

    return CurrentUser(
        id=claims["sub"],
        email=claims.get("email"),
        role=claims.get("role") or "authenticated",
    )


def get_current_user(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated caller."""
    if not authorization:
        raise UnauthorizedError("Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Unauthorized")

    return verify_token(token.strip(), settings)
