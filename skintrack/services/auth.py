# skintrack/services/auth.py
"""
Signup / login / refresh / logout for the JWT access + refresh token pair.

Every operation returns an ``Ok`` or ``Err`` value. Expected failures are
never raised; database errors that do not map to a known condition are
logged and reported as ``server_error``.

Refresh tokens are single use. Redeeming one issues and stores a new pair,
then revokes the redeemed token. A second redemption of the same token finds
no live row and is treated as a replay: every refresh token of the claimed
user is revoked.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from skintrack.core.result import AuthError, Err, Ok, Result
from skintrack.core.security import dummy_password_hash, hash_password, verify_password
from skintrack.core.tokens import issue_access_token, issue_refresh_token, verify_refresh_token
from skintrack.services.refresh_tokens import (
    DuplicateRefreshTokenError,
    cleanup_user_refresh_tokens,
    find_valid_refresh_token,
    revoke_all_user_refresh_tokens,
    revoke_refresh_token,
    store_refresh_token,
)
from skintrack.services.users import (
    create_profile,
    create_user,
    get_user_by_email,
    get_user_by_id,
    normalize_email,
    to_public,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    db: Session
    jwt_secret: str
    refresh_secret: str
    ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthSession:
    user: dict[str, str]
    access_token: str
    refresh_token: str


def _issue_token_pair(ctx: AuthContext, user_id: str) -> TokenPair:
    access_token = issue_access_token(user_id, ctx.jwt_secret)
    issued = issue_refresh_token(user_id, ctx.refresh_secret)
    store_refresh_token(
        ctx.db,
        user_id=user_id,
        jti=issued.jti,
        expires_at=issued.expires_at,
        ip=ctx.ip,
        user_agent=ctx.user_agent,
    )
    return TokenPair(access_token=access_token, refresh_token=issued.token)


def _cleanup_stale_tokens(db: Session, user_id: str) -> None:
    try:
        removed = cleanup_user_refresh_tokens(db, user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to cleanup refresh tokens for user_id=%s", user_id)
        return
    if removed:
        logger.debug("Removed %s stale refresh tokens for user_id=%s", removed, user_id)


# -----------------------------
# Signup
# -----------------------------
def signup(ctx: AuthContext, email: str, password: str) -> Result[AuthSession, AuthError]:
    db = ctx.db
    normalized = normalize_email(email)
    try:
        if get_user_by_email(db, normalized) is not None:
            return Err(AuthError.EMAIL_EXISTS)

        password_hash = hash_password(password)

        # User + profile commit together or not at all.
        try:
            user = create_user(db, email=normalized, password_hash=password_hash)
            create_profile(db, user_id=user.id)
            db.commit()
        except IntegrityError:
            # Concurrent signup for the same email committed first.
            db.rollback()
            logger.info("Signup rejected on unique constraint for email=%s", normalized)
            return Err(AuthError.EMAIL_EXISTS)

        public_user = to_public(user)
        pair = _issue_token_pair(ctx, public_user["id"])
    except (SQLAlchemyError, DuplicateRefreshTokenError):
        db.rollback()
        logger.exception("Signup failed for email=%s", normalized)
        return Err(AuthError.SERVER_ERROR)

    logger.info("Signup succeeded user_id=%s", public_user["id"])
    return Ok(
        AuthSession(
            user=public_user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )
    )


# -----------------------------
# Login
# -----------------------------
def login(ctx: AuthContext, email: str, password: str) -> Result[AuthSession, AuthError]:
    db = ctx.db
    try:
        user = get_user_by_email(db, email)

        # Always run one hash verification so a missing account costs the same
        # as a wrong password.
        stored_hash = user.password_hash if user is not None and user.password_hash else None
        is_valid = verify_password(password, stored_hash or dummy_password_hash())

        if user is None or stored_hash is None or not is_valid:
            return Err(AuthError.INVALID_CREDENTIALS)

        public_user = to_public(user)
        pair = _issue_token_pair(ctx, public_user["id"])
    except (SQLAlchemyError, DuplicateRefreshTokenError):
        db.rollback()
        logger.exception("Login failed")
        return Err(AuthError.SERVER_ERROR)

    _cleanup_stale_tokens(db, public_user["id"])

    return Ok(
        AuthSession(
            user=public_user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )
    )


# -----------------------------
# Refresh (rotation + replay detection)
# -----------------------------
def refresh(ctx: AuthContext, raw_refresh_token: str) -> Result[AuthSession, AuthError]:
    db = ctx.db

    payload = verify_refresh_token(raw_refresh_token, ctx.refresh_secret)
    if payload is None:
        return Err(AuthError.INVALID_TOKEN)

    try:
        stored = find_valid_refresh_token(db, payload.jti)

        if stored is None:
            # Signed and unexpired but not live: already rotated, revoked, or never stored.
            logger.warning(
                "Refresh token replay suspected for user_id=%s; revoking all refresh tokens",
                payload.sub,
            )
            revoke_all_user_refresh_tokens(db, payload.sub)
            return Err(AuthError.INVALID_TOKEN)

        owner_id = stored.user_id
        if owner_id != payload.sub:
            logger.error(
                "Refresh token owner mismatch (claimed=%s stored=%s); revoking both",
                payload.sub,
                owner_id,
            )
            revoke_all_user_refresh_tokens(db, payload.sub)
            revoke_all_user_refresh_tokens(db, owner_id)
            return Err(AuthError.INVALID_TOKEN)

        user = get_user_by_id(db, owner_id)
        if user is None:
            return Err(AuthError.INVALID_TOKEN)
        public_user = to_public(user)

        # New pair first, then revoke the redeemed token. These are two
        # separate commits; a crash in between leaves both tokens live.
        pair = _issue_token_pair(ctx, owner_id)
        revoke_refresh_token(db, payload.jti)
    except (SQLAlchemyError, DuplicateRefreshTokenError):
        db.rollback()
        logger.exception("Refresh failed for user_id=%s", payload.sub)
        return Err(AuthError.SERVER_ERROR)

    return Ok(
        AuthSession(
            user=public_user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )
    )


# -----------------------------
# Logout
# -----------------------------
def logout(ctx: AuthContext, raw_refresh_token: str | None) -> Ok[None]:
    """
    Always succeeds: the client is logged out once it drops its tokens,
    whatever happens to the stored row.
    """
    payload = verify_refresh_token(raw_refresh_token or "", ctx.refresh_secret)
    if payload is None:
        logger.info("Logout with missing or invalid refresh token; nothing to revoke")
        return Ok(None)

    try:
        revoke_refresh_token(ctx.db, payload.jti)
    except SQLAlchemyError:
        ctx.db.rollback()
        logger.exception("Logout failed to revoke refresh token for user_id=%s", payload.sub)

    return Ok(None)
