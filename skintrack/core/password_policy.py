from __future__ import annotations

import re
from typing import List

from fastapi import HTTPException, status

from skintrack.core.config import settings

_UPPERCASE_RE = re.compile(r"[A-Z]")
_LOWERCASE_RE = re.compile(r"[a-z]")
_NUMBER_RE = re.compile(r"[0-9]")


def evaluate_password(password: str) -> List[str]:
    """
    Returns a list of violation codes if the password does not meet policy.
    """
    pw = password or ""
    violations: list[str] = []
    min_length = max(int(getattr(settings, "PASSWORD_MIN_LENGTH", 8) or 0), 1)
    max_length = max(int(getattr(settings, "PASSWORD_MAX_LENGTH", 128) or 0), min_length)

    if len(pw) < min_length:
        violations.append("min_length")
    if len(pw) > max_length:
        violations.append("max_length")
    if not _LOWERCASE_RE.search(pw):
        violations.append("lowercase")
    if not _UPPERCASE_RE.search(pw):
        violations.append("uppercase")
    if not _NUMBER_RE.search(pw):
        violations.append("number")

    return violations


def ensure_strong_password(password: str) -> None:
    violations = evaluate_password(password)
    if violations:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "validation_error",
                "details": {"code": "weak_password", "violations": violations},
            },
        )
