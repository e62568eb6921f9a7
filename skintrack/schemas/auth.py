# skintrack/schemas/auth.py
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class RefreshTokenIn(_CamelModel):
    refresh_token: str | None = None


class UserPublic(BaseModel):
    id: str
    email: str


class BrowserAuthOut(_CamelModel):
    user: UserPublic
    access_token: str


class MobileAuthOut(_CamelModel):
    user: UserPublic
    access_token: str
    refresh_token: str


class MobileRefreshOut(_CamelModel):
    access_token: str
    refresh_token: str


class SessionOut(_CamelModel):
    authenticated: Literal[True] = True
    user_id: str
