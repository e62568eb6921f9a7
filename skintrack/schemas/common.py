# skintrack/schemas/common.py
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SuccessEnvelope(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T
    message: str | None = None


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    error: str
    details: Any = None
