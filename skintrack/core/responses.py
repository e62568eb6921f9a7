# skintrack/core/responses.py
from __future__ import annotations

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from skintrack.core.result import AuthError

BASE_ERROR_STATUS: dict[str, int] = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "method_not_allowed": status.HTTP_405_METHOD_NOT_ALLOWED,
    "conflict": status.HTTP_409_CONFLICT,
    "payload_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    "server_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

AUTH_ERROR_STATUS: dict[str, int] = {
    AuthError.INVALID_CREDENTIALS.value: status.HTTP_401_UNAUTHORIZED,
    AuthError.EMAIL_EXISTS.value: status.HTTP_409_CONFLICT,
    AuthError.INVALID_TOKEN.value: status.HTTP_401_UNAUTHORIZED,
    AuthError.MISSING_REFRESH_TOKEN.value: status.HTTP_400_BAD_REQUEST,
    AuthError.SERVER_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_ERROR_STATUS: dict[str, int] = {**BASE_ERROR_STATUS, **AUTH_ERROR_STATUS}

# Reverse lookup for HTTPExceptions raised without an explicit code.
_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    422: "validation_error",
    429: "rate_limit_exceeded",
    500: "server_error",
}


def _code(error: str | AuthError) -> str:
    return error.value if isinstance(error, AuthError) else str(error)


def error_to_status(error: str | AuthError) -> int:
    return _ERROR_STATUS.get(_code(error), status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_code_for_status(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "server_error")


def ok_body(data: Any, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def err_body(error: str | AuthError, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": _code(error)}
    if details is not None:
        body["details"] = details
    return body


def ok_response(
    data: Any,
    status_code: int = status.HTTP_200_OK,
    message: str | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(ok_body(data, message)))


def error_response(
    error: str | AuthError,
    details: Any = None,
    *,
    status_code: int | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code or error_to_status(error),
        content=jsonable_encoder(err_body(error, details)),
        headers=headers,
    )
