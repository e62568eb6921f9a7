# skintrack/core/result.py
"""
Typed success/failure values returned by services.

Expected failures (bad credentials, duplicate email, rejected token) travel
back to the route layer as ``Err`` values instead of exceptions; routes turn
them into HTTP responses through the status table in ``skintrack.core.responses``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=str)


class AuthError(str, Enum):
    EMAIL_EXISTS = "email_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    message: str | None = None

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E
    details: Any = None

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
