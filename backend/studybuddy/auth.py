"""Session tokens and the FastAPI auth gate.

After a successful GitHub login the user's identity is signed into a JWT
and stored in an httponly cookie. The `require_session` dependency
guards every mutating route: it accepts that cookie or the same token as
an `Authorization: Bearer` header, and raises an `UNAUTHORIZED`
`ServiceError` when neither yields a valid token.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from .config import settings
from .errors import ErrorKind, ServiceError
from .schemas import SessionUser

logger = logging.getLogger("studybuddy.auth")
bearer_scheme = HTTPBearer(auto_error=False)


def create_session_token(user: SessionUser, expires_in: Optional[timedelta] = None) -> str:
    """Sign `user` into a session token valid for `SESSION_EXPIRE_HOURS`."""
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(hours=settings.SESSION_EXPIRE_HOURS))
    payload = {
        "sub": user.id,
        "login": user.login,
        "name": user.display_name,
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> SessionUser:
    """Decode and verify a session token.

    Returns the `SessionUser` on success or raises an `UNAUTHORIZED`
    `ServiceError` on failure.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "Session expired")
    except jwt.InvalidTokenError:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "You do not have access.")
    if not payload.get("sub") or not payload.get("login"):
        raise ServiceError(ErrorKind.UNAUTHORIZED, "You do not have access.")
    return SessionUser(id=str(payload["sub"]), login=payload["login"], display_name=payload.get("name"))


def _session_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> SessionUser:
    """FastAPI dependency that returns the logged-in user or fails with 401."""
    token = _session_token(request, credentials)
    if not token:
        logger.info("rejected %s %s: no session", request.method, request.url.path)
        raise ServiceError(ErrorKind.UNAUTHORIZED, "You do not have access.")
    return decode_token(token)


def optional_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[SessionUser]:
    """Like `require_session`, but returns None instead of failing."""
    token = _session_token(request, credentials)
    if not token:
        return None
    try:
        return decode_token(token)
    except ServiceError:
        return None
