# skintrack/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from skintrack.core.config import settings
from skintrack.core.database import get_db
from skintrack.core.tokens import verify_access_token
from skintrack.services.auth import AuthContext

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "unauthorized"},
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_auth(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Validates ``Authorization: Bearer <access token>`` (signature, expiry and
    token type) and stores the caller's user id on ``request.state.user_id``.

    Returns:
      - the authenticated user id
    """
    if not creds or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise _unauthorized()

    payload = verify_access_token(creds.credentials, settings.JWT_SECRET)
    if payload is None:
        raise _unauthorized()

    request.state.user_id = payload.sub
    return payload.sub


# -----------------------------
# Auth service context
# -----------------------------
MAX_IP_LENGTH = 45


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("CF-Connecting-IP") or request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For may carry a chain; the first hop is the client.
        ip = forwarded.split(",", 1)[0].strip()
    else:
        ip = request.client.host if request.client else ""
    return (ip or "unknown")[:MAX_IP_LENGTH]


def client_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent") or "unknown"


def get_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    return AuthContext(
        db=db,
        jwt_secret=settings.JWT_SECRET,
        refresh_secret=settings.REFRESH_SECRET,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )
