"""Rate limiting configuration using slowapi."""

import re

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from portfolio_ledger.core.config import settings

_SECONDS_PER_UNIT = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


def retry_after_seconds(limit_detail: str) -> int:
    """
    Seconds until the window of a slowapi limit resets.

    slowapi describes limits as ``"X per Y unit"`` (e.g. ``"5 per 1 minute"``);
    anything unparseable falls back to one minute.
    """
    match = re.search(r"\d+\s+per\s+(\d+)\s+(second|minute|hour|day)", limit_detail)
    if not match:
        return 60
    return int(match.group(1)) * _SECONDS_PER_UNIT[match.group(2)]


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Exception handler for rate limit exceeded errors.

    Returns a 429 in the same ``detail`` format as the other error responses,
    with ``retry_after`` in the body and a ``Retry-After`` header.
    """
    retry_after = retry_after_seconds(str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "error_code": "RATE_LIMITED",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # each endpoint sets its own limit
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,
)
