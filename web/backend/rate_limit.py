#!/usr/bin/env python3
"""
Per-IP rate limiting for generation endpoints.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .exceptions import error_body

MATCH_RATE_LIMIT = "10/minute"
GENERATION_RATE_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address)


def add_rate_limit_handlers(app):
    """Add rate limit exception handlers to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_body("rate_limited", str(exc.detail), "RateLimitExceeded")
    )
