from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from dealership.core.environment import get_rate_limit, is_rate_limit_enabled
from dealership.core.prometheus_metrics import prometheus_collector

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_rate_limit()],
    enabled=is_rate_limit_enabled(),
)


def custom_rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    prometheus_collector.record_rate_limit(request.url.path)
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests from this IP, please try again later",
        },
    )
