# skintrack/services/users.py
"""
User and profile persistence helpers used by the auth service.

Emails are always normalized (trimmed + lowercased) before they are stored
or compared, so lookups are case/whitespace-insensitive.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from skintrack.models.user import Profile, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Look up a user by email address."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def create_user(db: Session, *, email: str, password_hash: str) -> User:
    """
    Add a user to the current transaction and flush so the id is available.
    The caller owns the commit.
    """
    user = User(email=normalize_email(email), password_hash=password_hash)
    db.add(user)
    db.flush()
    return user


def create_profile(db: Session, *, user_id: str) -> Profile:
    profile = Profile(user_id=user_id)
    db.add(profile)
    db.flush()
    return profile


def to_public(user: User) -> dict[str, str]:
    return {"id": user.id, "email": user.email}
