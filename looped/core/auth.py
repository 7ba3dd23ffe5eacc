"""
Auth utilities for the Looped API.

Validates project JWTs (HS256, `sub` claim = user id) and extracts the
user id from the request. Falls back to the X-User-Id header when no
bearer token is sent (local development and tests).
"""
from fastapi import Header, Request
from typing import Optional
import jwt
import logging

from looped.core.config import settings
from looped.core.errors import AuthorizationError

logger = logging.getLogger(__name__)


def verify_jwt(token: str, secret: Optional[str] = None, audience: Optional[str] = None) -> Optional[str]:
    """
    Verify a bearer JWT and extract the user id.

    Returns None when no secret is configured (verification disabled).

    Raises:
        AuthorizationError 401: Invalid or expired token
    """
    key = secret or settings.AUTH_JWT_SECRET
    if not key:
        logger.debug("No AUTH_JWT_SECRET configured, skipping JWT validation")
        return None

    aud = audience if audience is not None else settings.AUTH_JWT_AUDIENCE
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=["HS256"],
            audience=aud or None,
            options={"verify_signature": True, "verify_exp": True, "verify_aud": bool(aud)},
        )
    except jwt.ExpiredSignatureError:
        raise AuthorizationError.unauthenticated("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthorizationError.unauthenticated("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthorizationError.unauthenticated("Token has no subject")
    return str(user_id)


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Development/test user ID")
) -> str:
    """
    Extract current user ID from request context.

    Priority:
    1. Bearer JWT from Authorization header
    2. X-User-Id header, only while JWT verification is disabled
    3. Raise 401
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user_id = verify_jwt(auth_header[7:])
        if user_id:
            return user_id

    if x_user_id and not settings.AUTH_JWT_SECRET:
        return x_user_id

    raise AuthorizationError.unauthenticated(
        "Missing Authorization (Bearer JWT) or X-User-Id header"
    )


def ensure_owner(row_user_id: str, user_id: str, what: str = "resource") -> None:
    """Reject access to another user's row."""
    if row_user_id != user_id:
        raise AuthorizationError(f"This {what} belongs to another user")
