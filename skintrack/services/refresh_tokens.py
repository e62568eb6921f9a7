from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Request, Response
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skintrack.core.config import settings
from skintrack.core.tokens import hash_jti
from skintrack.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)


class DuplicateRefreshTokenError(Exception):
    """A refresh token with the same jti hash is already stored."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Persistence
# -----------------------------
def store_refresh_token(
    db: Session,
    *,
    user_id: str,
    jti: str,
    expires_at: datetime,
    ip: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """
    Persist one row per issued refresh token, keyed by the hash of its jti.
    """
    rt = RefreshToken(
        user_id=user_id,
        jti_hash=hash_jti(jti),
        expires_at=expires_at,
        revoked_at=None,
        ip=ip,
        user_agent=user_agent,
    )
    db.add(rt)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.error("Failed to store refresh token for user_id=%s: %s", user_id, exc)
        raise DuplicateRefreshTokenError("duplicate_refresh_token") from exc
    return rt


def find_valid_refresh_token(db: Session, jti: str) -> RefreshToken | None:
    """
    Returns the stored row only if it is neither revoked nor expired.
    A miss, a revoked row and an expired row all look the same to callers.
    """
    return (
        db.query(RefreshToken)
        .filter(
            RefreshToken.jti_hash == hash_jti(jti),
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > _now(),
        )
        .first()
    )


def revoke_refresh_token(db: Session, jti: str) -> None:
    """Mark the token revoked. No-op when it is unknown or already revoked."""
    updated = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.jti_hash == hash_jti(jti),
            RefreshToken.revoked_at.is_(None),
        )
        .update({RefreshToken.revoked_at: _now()}, synchronize_session=False)
    )
    db.commit()
    if updated:
        logger.debug("Revoked refresh token")


def revoke_all_user_refresh_tokens(db: Session, user_id: str) -> int:
    """
    Revoke every live refresh token owned by the user. Only used when a
    token replay or ownership mismatch is detected.
    """
    updated = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        )
        .update({RefreshToken.revoked_at: _now()}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


def cleanup_user_refresh_tokens(db: Session, user_id: str) -> int:
    """Delete the user's expired or revoked rows. Not needed for correctness."""
    deleted = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.user_id == user_id,
            or_(
                RefreshToken.expires_at < _now(),
                RefreshToken.revoked_at.is_not(None),
            ),
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


# -----------------------------
# Cookie helpers
# -----------------------------
def cookie_name() -> str:
    return str(getattr(settings, "REFRESH_COOKIE_NAME", "refresh_token")).strip() or "refresh_token"


def cookie_path() -> str:
    # Keep refresh cookie scoped to auth endpoints
    return str(getattr(settings, "REFRESH_COOKIE_PATH", "/api/auth")).strip() or "/api/auth"


def cookie_secure() -> bool:
    # Prod => HTTPS => Secure cookies. Dev http://localhost => must be False.
    return settings.is_prod


def cookie_samesite() -> str:
    v = str(getattr(settings, "REFRESH_COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def refresh_cookie_max_age_seconds() -> int:
    return int(settings.REFRESH_TOKEN_EXPIRE_SECONDS)


def set_refresh_cookie(resp: Response, raw_refresh_token: str) -> None:
    resp.set_cookie(
        key=cookie_name(),
        value=raw_refresh_token,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=refresh_cookie_max_age_seconds(),
        path=cookie_path(),
    )


def clear_refresh_cookie(resp: Response) -> None:
    resp.delete_cookie(
        key=cookie_name(),
        path=cookie_path(),
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
    )


def read_refresh_cookie(req: Request) -> str | None:
    val = req.cookies.get(cookie_name())
    if not val:
        return None
    val = val.strip()
    return val or None
