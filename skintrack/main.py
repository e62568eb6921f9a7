import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from skintrack.core.config import require_auth_secrets, settings
from skintrack.core.responses import error_code_for_status, error_response
from skintrack.core.security import dummy_password_hash
from skintrack.routes.auth import router as auth_router
from skintrack.routes.auth_mobile import router as auth_mobile_router
from skintrack.routes.health import router as health_router

logger = logging.getLogger(__name__)

require_auth_secrets()

# Hash once at startup so the first login miss is not slower than the rest.
dummy_password_hash()

app = FastAPI(title="Skintrack API")
logger.info(
    "Startup config: ENV=%s api_prefix=%s rate_limiting=%s",
    settings.ENV,
    settings.API_PREFIX,
    settings.RATE_LIMIT_ENABLED,
)


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):  # noqa: ARG001
    detail = exc.detail
    error = error_code_for_status(exc.status_code)
    details = None

    if isinstance(detail, dict):
        # Raise HTTPException(detail={"error": "...", "details": {...}}) to pick the code.
        code = detail.get("error")
        if isinstance(code, str) and code:
            error = code
        details = detail.get("details")
    elif isinstance(detail, str) and detail:
        details = {"message": detail}

    return error_response(
        error,
        details,
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return error_response("validation_error", {"errors": exc.errors()}, status_code=400)


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response("server_error")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(auth_mobile_router, prefix=settings.API_PREFIX)
app.include_router(health_router, prefix=settings.API_PREFIX)
