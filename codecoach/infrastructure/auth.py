"""
Authentication helpers for FastAPI.

The browser client sends the session JWT it received from its auth
provider. We only need the subject claim to scope rows to a user, so the
token is decoded without signature verification; requests without a usable
token run as the anonymous user.
"""

from __future__ import annotations

import jwt
from fastapi import Header, HTTPException

from codecoach.config import ANONYMOUS_USER_ID
from codecoach.observability.logging import get_logger

logger = get_logger(__name__)


def decode_jwt_subject(token: str) -> str | None:
    """
    Return the ``sub`` claim of a JWT, or None when the token is malformed.

    Side Effects:
        None (pure function)
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None

    subject = claims.get("sub")
    return str(subject) if subject else None


def get_current_user_id(authorization: str | None = Header(None)) -> str:
    """
    Extract user_id from the Authorization header.

    Example:
        @router.post("/api/generate-app")
        def generate_app(user_id: str = Depends(get_current_user_id)):
            ...
    """
    if not authorization or not authorization.startswith("Bearer "):
        return ANONYMOUS_USER_ID

    subject = decode_jwt_subject(authorization.removeprefix("Bearer ").strip())
    if subject is None:
        logger.debug("Unreadable bearer token, using anonymous user")
        return ANONYMOUS_USER_ID
    return subject


def require_user_header(x_user_id: str | None = Header(None)) -> str:
    """
    User id forwarded by the auth proxy; required for account linking.

    Raises:
        HTTPException: 401 when the header is missing
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return x_user_id


def require_authorization(authorization: str | None = Header(None)) -> str:
    """Any Authorization header; used by endpoints that only check presence."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return authorization
