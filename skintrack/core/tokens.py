# skintrack/core/tokens.py
"""
Signed access/refresh token codec.

Both token kinds are HS256 JWTs carrying ``sub`` (user id), ``type``
(``"access"`` or ``"refresh"``), a random ``jti`` and ``iat``/``exp``.
The ``type`` claim is always checked on verification so the two kinds can
never be used in place of each other, even if they happen to share a secret.

Verification never raises: a bad signature, an expired token, a malformed
token, a payload of the wrong shape and a type mismatch all yield ``None``.
"""
from __future__ import annotations

import base64
import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, ValidationError

from skintrack.core.config import settings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class AccessTokenPayload(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)

    sub: str
    type: Literal["access"]
    jti: str
    iat: int
    exp: int


class RefreshTokenPayload(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)

    sub: str
    type: Literal["refresh"]
    jti: str
    iat: int
    exp: int


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    jti: str
    expires_at: datetime


def _now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def _new_jti() -> str:
    return str(uuid.uuid4())


def _sign(user_id: str, token_type: TokenType, jti: str, iat: int, exp: int, secret: str) -> str:
    payload = {
        "sub": user_id,
        "type": token_type,
        "jti": jti,
        "iat": iat,
        "exp": exp,
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, secret: str) -> dict | None:
    if not token or not secret:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


# -------------------------
# Issuance
# -------------------------
def issue_access_token(user_id: str, secret: str) -> str:
    now = _now_ts()
    return _sign(
        user_id,
        "access",
        _new_jti(),
        now,
        now + settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        secret,
    )


def issue_refresh_token(user_id: str, secret: str) -> IssuedRefreshToken:
    """
    Returns the signed token together with its plaintext jti and absolute
    expiry so the caller can persist the hashed record without re-decoding.
    """
    now = _now_ts()
    exp = now + settings.REFRESH_TOKEN_EXPIRE_SECONDS
    jti = _new_jti()
    token = _sign(user_id, "refresh", jti, now, exp, secret)
    return IssuedRefreshToken(
        token=token,
        jti=jti,
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


# -------------------------
# Verification
# -------------------------
def verify_access_token(token: str, secret: str) -> AccessTokenPayload | None:
    raw = _decode(token, secret)
    if raw is None or raw.get("type") != "access":
        return None
    try:
        return AccessTokenPayload.model_validate(raw)
    except ValidationError:
        logger.warning("Rejected signed access token with malformed payload")
        return None


def verify_refresh_token(token: str, secret: str) -> RefreshTokenPayload | None:
    raw = _decode(token, secret)
    if raw is None or raw.get("type") != "refresh":
        return None
    try:
        return RefreshTokenPayload.model_validate(raw)
    except ValidationError:
        logger.warning("Rejected signed refresh token with malformed payload")
        return None


def hash_jti(jti: str) -> str:
    """SHA-256 of the jti, base64url without padding. Used as the storage key."""
    digest = hashlib.sha256(jti.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
