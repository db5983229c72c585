"""FastAPI dependencies: storage handle, services and the authentication gate."""

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from .auth import TokenCodec, TokenError, token_codec
from .config import settings
from .crud import TaskRepository, UserRepository
from .db import SessionFactory
from .errors import AuthenticationError
from .logger import logger
from .services import AuthService, TaskService


# ==================== Storage & Services ====================

def get_session_factory(request: Request) -> SessionFactory:
    """Session factory created by the application lifespan."""
    return request.app.state.session_factory


def get_token_codec() -> TokenCodec:
    return token_codec


def get_auth_service(
    session_factory: SessionFactory = Depends(get_session_factory),
    tokens: TokenCodec = Depends(get_token_codec),
) -> AuthService:
    return AuthService(UserRepository(session_factory), tokens)


def get_task_service(session_factory: SessionFactory = Depends(get_session_factory)) -> TaskService:
    return TaskService(TaskRepository(session_factory))


# ==================== Authentication Gate ====================

# auto_error=False so a missing header raises our own AuthenticationError
token_header = APIKeyHeader(name=settings.AUTH_HEADER_NAME, auto_error=False)


async def get_auth_token(token: str | None = Depends(token_header)) -> str:
    """Read the session token from the designated header. Cookies are never consulted."""
    if not token or not token.strip():
        raise AuthenticationError("No token provided")
    return token.strip()


async def require_user_id(
    request: Request,
    token: str = Depends(get_auth_token),
    tokens: TokenCodec = Depends(get_token_codec),
) -> int:
    """Verify the token and attach the caller's id to ``request.state``.

    Every task route depends on this; a request that fails here never reaches
    the route body.
    """
    try:
        user_id = tokens.verify(token)
    except TokenError as e:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(f"[{request_id}] Rejected token on {request.method} {request.url.path}: {e}")
        raise AuthenticationError("Token is not valid") from e

    request.state.user_id = user_id
    return user_id
