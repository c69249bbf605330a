"""
Session handling for the external identity provider.

The identity provider signs an HS256 JWT with `settings.secret_key` and
puts the user id in `sub`. Clients send it either as
`Authorization: Bearer <token>` or in the session cookie. Routes depend
on `get_current_user_id` and never read a user id from the request body.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Cookie, Request
from jose import JWTError, jwt

from errors import AuthError
from settings import settings

logger = logging.getLogger(__name__)


def create_session_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed session token for `user_id`.

    Used by the identity provider side and by tests.
    """

    minutes = settings.session_ttl_minutes if expires_minutes is None else expires_minutes
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": now, "exp": now + timedelta(minutes=minutes)}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> str:
    """Return the user id inside `token`.

    Raises `AuthError` for expired, tampered or malformed tokens and for
    tokens without a subject.
    """

    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.warning("Rejected session token: %s", exc)
        raise AuthError("Unauthorized") from exc

    user_id = claims.get("sub")
    if not user_id:
        logger.warning("Rejected session token without subject")
        raise AuthError("Unauthorized")
    return str(user_id)


def get_current_user_id(
    request: Request,
    session_token: Annotated[Optional[str], Cookie(alias=settings.session_cookie_name)] = None,
) -> str:
    """FastAPI dependency: the authenticated caller's user id.

    Bearer header wins over the cookie when both are present.
    """

    token = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
    elif session_token:
        token = session_token

    if not token:
        raise AuthError("Unauthorized")
    return decode_session_token(token)
