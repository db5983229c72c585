"""FastAPI application entry point with lifecycle management and error mapping."""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .db import create_engine_from_settings, create_session_factory, dispose_engine
from .errors import AppError, AuthenticationError
from .logger import logger
from .middleware import (
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
)
from .monitoring import setup_monitoring
from .routes import router


# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the connection pool for the lifetime of the process."""
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    logger.info("Database schema managed by Alembic migrations")

    engine = create_engine_from_settings()
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await dispose_engine(engine)
    logger.info(f"{settings.APP_NAME} shutdown complete")


# ==================== Error Handlers ====================


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema violations are 400s, reported as one readable message."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ==================== Application Setup ====================


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Middleware registration (last registered = outermost layer)
app.middleware("http")(security_headers_middleware)
app.middleware("http")(request_logging_middleware)
app.middleware("http")(add_request_id_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", settings.AUTH_HEADER_NAME],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(router)

setup_monitoring(app)
