# skintrack/routes/auth_mobile.py
"""
Mobile auth routes.

Same state machine as the browser routes, but the refresh token travels in
the JSON request/response bodies (the app keeps it in secure storage) and no
cookie is ever set.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from skintrack.core.password_policy import ensure_strong_password
from skintrack.core.responses import error_response, ok_response
from skintrack.core.result import AuthError, Err
from skintrack.dependencies.auth import get_auth_context, require_auth
from skintrack.dependencies.rate_limit import require_rate_limit
from skintrack.schemas.auth import AuthIn, MobileAuthOut, MobileRefreshOut, RefreshTokenIn
from skintrack.schemas.common import ErrorEnvelope, SuccessEnvelope
from skintrack.services import auth as auth_service
from skintrack.services.auth import AuthContext

router = APIRouter(prefix="/auth/mobile", tags=["auth-mobile"])

_CREDENTIAL_ERRORS = {
    400: {"model": ErrorEnvelope},
    401: {"model": ErrorEnvelope},
    429: {"model": ErrorEnvelope},
}


def _mobile_body(session: auth_service.AuthSession) -> dict:
    return MobileAuthOut(
        user=session.user,
        access_token=session.access_token,
        refresh_token=session.refresh_token,
    ).model_dump(by_alias=True)


def _body_token(payload: RefreshTokenIn | None) -> str | None:
    if payload is None or not payload.refresh_token:
        return None
    return payload.refresh_token.strip() or None


@router.post(
    "/login",
    response_model=SuccessEnvelope[MobileAuthOut],
    responses=_CREDENTIAL_ERRORS,
    dependencies=[Depends(require_rate_limit("auth_mobile_login"))],
)
def login(payload: AuthIn, ctx: AuthContext = Depends(get_auth_context)):
    result = auth_service.login(ctx, payload.email, payload.password)
    if isinstance(result, Err):
        return error_response(result.error)
    return ok_response(_mobile_body(result.data))


@router.post(
    "/signup",
    response_model=SuccessEnvelope[MobileAuthOut],
    status_code=status.HTTP_201_CREATED,
    responses={**_CREDENTIAL_ERRORS, 409: {"model": ErrorEnvelope}},
    dependencies=[Depends(require_rate_limit("auth_mobile_signup"))],
)
def signup(payload: AuthIn, ctx: AuthContext = Depends(get_auth_context)):
    ensure_strong_password(payload.password)

    result = auth_service.signup(ctx, payload.email, payload.password)
    if isinstance(result, Err):
        return error_response(result.error)
    return ok_response(_mobile_body(result.data), status_code=status.HTTP_201_CREATED)


@router.post(
    "/refresh",
    response_model=SuccessEnvelope[MobileRefreshOut],
    responses=_CREDENTIAL_ERRORS,
    dependencies=[Depends(require_rate_limit("auth_mobile_refresh"))],
)
def refresh(
    payload: RefreshTokenIn | None = None,
    ctx: AuthContext = Depends(get_auth_context),
):
    raw = _body_token(payload)
    if not raw:
        return error_response(AuthError.MISSING_REFRESH_TOKEN)

    result = auth_service.refresh(ctx, raw)
    if isinstance(result, Err):
        return error_response(result.error)

    body = MobileRefreshOut(
        access_token=result.data.access_token,
        refresh_token=result.data.refresh_token,
    ).model_dump(by_alias=True)
    return ok_response(body)


@router.post(
    "/logout",
    response_model=SuccessEnvelope[None],
    responses={401: {"model": ErrorEnvelope}, 429: {"model": ErrorEnvelope}},
    dependencies=[Depends(require_auth), Depends(require_rate_limit("auth_mobile_logout"))],
)
def logout(
    payload: RefreshTokenIn | None = None,
    ctx: AuthContext = Depends(get_auth_context),
):
    raw = _body_token(payload)
    if raw:
        auth_service.logout(ctx, raw)
    return ok_response(None, message="Disconnected")
