"""
Rate limiting for the public auth endpoints (slowapi, in-process storage).

- /auth/login: 5 req/min (brute force protection)
- /auth/recover-password, /auth/change-first-password: 3 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from schoolms.core.config import settings
from schoolms.core.logging_config import logger

AUTH_LIMIT = "5/minute"
STRICT_LIMIT = "3/minute"


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After header"""
    logger.warning(f"[RateLimit] Exceeded for {get_remote_address(request)} on {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": "60"},
    )
