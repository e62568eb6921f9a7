# skintrack/routes/auth.py
"""
Browser auth routes.

The refresh token only ever travels in an httpOnly cookie scoped to the auth
path; the access token is returned in the JSON body for the frontend to keep
in memory and send as a bearer token.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from skintrack.core.password_policy import ensure_strong_password
from skintrack.core.responses import error_response, ok_response
from skintrack.core.result import AuthError, Err
from skintrack.dependencies.auth import get_auth_context, require_auth
from skintrack.dependencies.rate_limit import require_rate_limit
from skintrack.schemas.auth import AuthIn, BrowserAuthOut, RefreshTokenIn, SessionOut
from skintrack.schemas.common import ErrorEnvelope, SuccessEnvelope
from skintrack.services import auth as auth_service
from skintrack.services.auth import AuthContext
from skintrack.services.refresh_tokens import (
    clear_refresh_cookie,
    read_refresh_cookie,
    set_refresh_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])

_CREDENTIAL_ERRORS = {
    400: {"model": ErrorEnvelope},
    401: {"model": ErrorEnvelope},
    429: {"model": ErrorEnvelope},
}
_SIGNUP_ERRORS = {**_CREDENTIAL_ERRORS, 409: {"model": ErrorEnvelope}}
_BEARER_ERRORS = {401: {"model": ErrorEnvelope}, 429: {"model": ErrorEnvelope}}


def extract_refresh_token(request: Request, payload: RefreshTokenIn | None) -> str | None:
    """Cookie first (browser); JSON body ``refreshToken`` as a fallback."""
    from_cookie = read_refresh_cookie(request)
    if from_cookie:
        return from_cookie
    if payload is not None and payload.refresh_token:
        return payload.refresh_token.strip() or None
    return None


def _browser_body(session: auth_service.AuthSession) -> dict:
    return BrowserAuthOut(user=session.user, access_token=session.access_token).model_dump(by_alias=True)


@router.post(
    "/login",
    response_model=SuccessEnvelope[BrowserAuthOut],
    responses=_CREDENTIAL_ERRORS,
    dependencies=[Depends(require_rate_limit("auth_login"))],
)
def login(payload: AuthIn, ctx: AuthContext = Depends(get_auth_context)):
    result = auth_service.login(ctx, payload.email, payload.password)
    if isinstance(result, Err):
        return error_response(result.error)

    response = ok_response(_browser_body(result.data))
    set_refresh_cookie(response, result.data.refresh_token)
    return response


@router.post(
    "/signup",
    response_model=SuccessEnvelope[BrowserAuthOut],
    status_code=status.HTTP_201_CREATED,
    responses=_SIGNUP_ERRORS,
    dependencies=[Depends(require_rate_limit("auth_signup"))],
)
def signup(payload: AuthIn, ctx: AuthContext = Depends(get_auth_context)):
    ensure_strong_password(payload.password)

    result = auth_service.signup(ctx, payload.email, payload.password)
    if isinstance(result, Err):
        return error_response(result.error)

    response = ok_response(_browser_body(result.data), status_code=status.HTTP_201_CREATED)
    set_refresh_cookie(response, result.data.refresh_token)
    return response


@router.post(
    "/refresh",
    response_model=SuccessEnvelope[BrowserAuthOut],
    responses=_CREDENTIAL_ERRORS,
    dependencies=[Depends(require_rate_limit("auth_refresh"))],
)
def refresh(
    request: Request,
    payload: RefreshTokenIn | None = None,
    ctx: AuthContext = Depends(get_auth_context),
):
    """
    Rotate the refresh cookie:
      - read refresh token from cookie
      - redeem it (replays revoke every session of the user)
      - set the new refresh cookie
      - return a new access token
    """
    raw = extract_refresh_token(request, payload)
    if not raw:
        return error_response(AuthError.MISSING_REFRESH_TOKEN)

    result = auth_service.refresh(ctx, raw)
    if isinstance(result, Err):
        response = error_response(result.error)
        clear_refresh_cookie(response)
        return response

    response = ok_response(_browser_body(result.data))
    set_refresh_cookie(response, result.data.refresh_token)
    return response


@router.post(
    "/logout",
    response_model=SuccessEnvelope[None],
    responses=_BEARER_ERRORS,
    # require_auth first so the limiter counts the user, not the IP.
    dependencies=[Depends(require_auth), Depends(require_rate_limit("auth_logout"))],
)
def logout(
    request: Request,
    payload: RefreshTokenIn | None = None,
    ctx: AuthContext = Depends(get_auth_context),
):
    raw = extract_refresh_token(request, payload)
    if raw:
        auth_service.logout(ctx, raw)

    response = ok_response(None, message="Disconnected")
    clear_refresh_cookie(response)
    return response


@router.get(
    "/session",
    response_model=SuccessEnvelope[SessionOut],
    responses=_BEARER_ERRORS,
    dependencies=[Depends(require_auth), Depends(require_rate_limit("auth_session"))],
)
def session(user_id: str = Depends(require_auth)):
    return ok_response(SessionOut(user_id=user_id).model_dump(by_alias=True))
