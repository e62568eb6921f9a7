# skintrack/dependencies/rate_limit.py
"""
Per-route rate limiting as a FastAPI dependency.

Routes list ``require_rate_limit("<route_key>")`` in their ``dependencies``.
Callers are counted per user once ``require_auth`` has run earlier in the
same list, otherwise per client IP. Every decision is logged as one JSON line.
"""
from __future__ import annotations

import json
import logging
from typing import Callable

from fastapi import HTTPException, Request, status

from skintrack.core.config import settings
from skintrack.dependencies.auth import client_ip
from skintrack.services.rate_limiter import RateLimitResult, get_rate_limiter

logger = logging.getLogger(__name__)


def caller_identity(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{client_ip(request)}"


def require_rate_limit(
    route_key: str,
    *,
    limit: int | None = None,
    window_seconds: int | None = None,
) -> Callable:
    # Defaults are read per request so tests and ops can retune settings live.
    def enforce_rate_limit(request: Request) -> None:
        result = get_rate_limiter().check(
            identifier=caller_identity(request),
            route_key=route_key,
            limit=max(1, limit or settings.RATE_LIMIT_DEFAULT_MAX_REQUESTS),
            window_seconds=max(1, window_seconds or settings.RATE_LIMIT_DEFAULT_WINDOW_SECONDS),
        )
        logger.info(_decision_line(request, route_key, result))
        if not result.allowed:
            raise _too_many_requests(result)

    return enforce_rate_limit


def _too_many_requests(result: RateLimitResult) -> HTTPException:
    retry_after = max(1, result.retry_after_seconds)
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": "rate_limit_exceeded",
            "details": {
                "retry_after_seconds": retry_after,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        },
        headers={"Retry-After": str(retry_after)},
    )


def _decision_line(request: Request, route_key: str, result: RateLimitResult) -> str:
    return json.dumps(
        {
            "event": "rate_limit",
            "decision": "allow" if result.allowed else "block",
            "user_id": getattr(request.state, "user_id", None),
            "route_key": route_key,
            "path": request.url.path,
            "method": request.method,
            "limiter_key": result.limiter_key,
            "count": result.count,
            "limit": result.limit,
            "remaining": result.remaining,
            "window_seconds": result.window_seconds,
            "reset_epoch": result.window_reset_epoch,
        },
        separators=(",", ":"),
    )
