# sitescan/core/ratelimit.py
# HTTP-level throttle on the intake endpoint. Per-domain scan admission lives in sitescan.ratelimit.

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded as IntakeRateLimitExceeded
from slowapi.util import get_remote_address

from sitescan.core import config

limiter = Limiter(key_func=get_remote_address)

intake_limit = config.INTAKE_RATE_LIMIT


def intake_rate_limit_handler(request: Request, exc: IntakeRateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many scan submissions ({exc.detail}). Please try again later."},
        headers={"Retry-After": "60"},
    )
