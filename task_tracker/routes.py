# API route definitions (HTTP layer)
# Defines ENDPOINTS

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from .schemas import (
    AuthResponse,
    ErrorResponse,
    MessageResponse,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    UserLogin,
    UserOut,
    UserRegister,
)
from .dependencies import (
    get_auth_service,
    get_auth_token,
    get_session_factory,
    get_task_service,
    require_user_id,
)
from .services import AuthService, TaskService
from .db import SessionFactory, check_db_connection
from .config import settings


AUTH_ERRORS = {401: {"model": ErrorResponse}}
TASK_ERRORS = {401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}

router = APIRouter()
auth_router = APIRouter(prefix="/auth", tags=["auth"])
task_router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    dependencies=[Depends(require_user_id)],
    responses=TASK_ERRORS,
)


# ============================================================================
# Service Endpoints
# ============================================================================

@router.get("/")
def root():
    prefix = settings.API_PREFIX
    return {
        "app": settings.APP_NAME,
        "env": settings.APP_ENV,
        "endpoints": {
            "register": f"POST {prefix}/auth/register",
            "login": f"POST {prefix}/auth/login",
            "me": f"GET {prefix}/auth/me",
            "tasks": f"GET {prefix}/tasks (protected)",
        },
    }


@router.get("/health")
async def health_check(session_factory: SessionFactory = Depends(get_session_factory)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the database answers
        - 503 Service Unavailable otherwise
    """
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
        "database": "connected",
    }
    if not await check_db_connection(session_factory):
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        raise HTTPException(status_code=503, detail=health_status)
    return health_status


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

@auth_router.post("/register", response_model=AuthResponse, status_code=201)
async def register(user: UserRegister, service: AuthService = Depends(get_auth_service)):
    """Register a new user and return a session token.

    Raises:
        400: Missing field or email already registered
    """
    return await service.register(user.name, user.email, user.password)


@auth_router.post("/login", response_model=AuthResponse, responses=AUTH_ERRORS)
async def login(credentials: UserLogin, service: AuthService = Depends(get_auth_service)):
    """Authenticate with email and password.

    Raises:
        401: Invalid credentials
    """
    return await service.login(credentials.email, credentials.password)


@auth_router.get("/me", response_model=UserOut, responses=AUTH_ERRORS)
async def me(
    token: str = Depends(get_auth_token),
    service: AuthService = Depends(get_auth_service),
):
    """Profile of the user named by the session token."""
    return await service.current_user(token)


# ============================================================================
# Task Endpoints (token required)
# ============================================================================

@task_router.get("", response_model=list[TaskOut])
async def list_tasks(
    user_id: int = Depends(require_user_id),
    service: TaskService = Depends(get_task_service),
):
    return await service.list_tasks(user_id)


@task_router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    task: TaskCreate,
    user_id: int = Depends(require_user_id),
    service: TaskService = Depends(get_task_service),
):
    return await service.create_task(
        user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
    )


@task_router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: int,
    user_id: int = Depends(require_user_id),
    service: TaskService = Depends(get_task_service),
):
    return await service.get_task(user_id, task_id)


@task_router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    changes: TaskUpdate,
    user_id: int = Depends(require_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Partial update: only fields present in the body are written."""
    return await service.update_task(user_id, task_id, changes.model_dump(exclude_unset=True))


@task_router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: int,
    user_id: int = Depends(require_user_id),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(user_id, task_id)
    return MessageResponse(message="Task deleted successfully")


router.include_router(auth_router, prefix=settings.API_PREFIX)
router.include_router(task_router, prefix=settings.API_PREFIX)
