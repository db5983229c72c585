"""HTTP middleware for request tracing, logging and security headers."""

from fastapi import Request
import time
import uuid
from .config import settings
from .logger import logger


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Tag each request with an id (client-supplied or generated) for log correlation."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and duration. Headers and bodies are never logged."""
    start_time = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Error: {type(e).__name__} - Duration: {duration:.3f}s",
            exc_info=True
        )
        raise

    duration = time.perf_counter() - start_time
    user_id = getattr(request.state, "user_id", None)
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"User: {user_id if user_id is not None else '-'} - "
        f"Duration: {duration:.3f}s"
    )
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    # Responses carry per-user data
    response.headers["Cache-Control"] = "no-store"

    if settings.APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    # Allows the Swagger UI assets served from jsdelivr
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://cdn.jsdelivr.net"
    )
    return response
