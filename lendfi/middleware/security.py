"""
Security middleware: per-IP rate limiting and response hardening headers.
"""
import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from lendfi.config import settings
from lendfi.utils.responses import error_response

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

SENSITIVE_PATHS = ("/admin", "/auth", "/loans", "/transactions")


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    client_ip = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for IP {client_ip} on {request.url.path}")
    return error_response(429, "Too many requests, please try again later")


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"

    path = request.url.path
    if any(path.startswith(f"{settings.API_PREFIX}{prefix}") for prefix in SENSITIVE_PATHS):
        response.headers["Cache-Control"] = "no-store, max-age=0"

    return response
