"""Business logic layer: registration, login and ownership-scoped task operations.

Services raise the exceptions in ``errors`` and return response schemas.
Raw storage errors are logged here and replaced with a generic InternalError.
"""

from contextlib import contextmanager
from datetime import date
from typing import Any, Mapping

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from .auth import TokenCodec, TokenError, hash_password, verify_password
from .crud import TaskRepository, UserRepository
from .errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .logger import logger
from .models import MAX_ROW_ID, Task, User
from .schemas import AuthResponse, TaskOut, TaskPriority, TaskStatus, UserOut

INVALID_CREDENTIALS = "Invalid credentials"
TASK_NOT_FOUND = "Task not found"

# ==================== Helper Functions ====================


@contextmanager
def storage_errors(operation: str):
    """Translate SQLAlchemy failures inside the block into InternalError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Storage failure during {operation}: {str(e)}", exc_info=True)
        raise InternalError() from e


def _blank(value: str | None) -> bool:
    return not (value and value.strip())


def _convert_to_user_out(user: User) -> UserOut:
    """Convert ORM User model to the public projection."""
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
    )


def _convert_to_task_out(task: Task) -> TaskOut:
    return TaskOut.model_validate(task)


def _parse_status(value: Any) -> str:
    try:
        return TaskStatus(value).value
    except ValueError:
        raise ValidationError(f"Invalid status '{value}'") from None


def _parse_priority(value: Any) -> str:
    try:
        return TaskPriority(value).value
    except ValueError:
        raise ValidationError(f"Invalid priority '{value}'") from None


def _parse_due_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid due_date '{value}'") from None


def _clean_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Title is required")
    return value.strip()


def _require_task_id(user_id: int, task_id: int) -> None:
    """Ids no row can hold are missing tasks, not storage errors."""
    if not 1 <= task_id <= MAX_ROW_ID:
        logger.warning(f"Task id out of range: task_id={task_id} user_id={user_id}")
        raise NotFoundError(TASK_NOT_FOUND)


def _clean_description(value: Any) -> str | None:
    # An empty description clears the field
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError("Description must be a string")
    return value


# ==================== Authentication ====================


class AuthService:
    """Registration, login and token resolution."""

    def __init__(self, users: UserRepository, tokens: TokenCodec):
        self.users = users
        self.tokens = tokens

    async def register(self, name: str, email: str, password: str) -> AuthResponse:
        """Create an account and return a token for it."""
        if _blank(name) or _blank(email) or _blank(password):
            raise ValidationError("Please provide name, email and password")
        name = name.strip()

        logger.info(f"Registering new user: {email}")
        with storage_errors("registration"):
            existing_user = await self.users.select_user_by_email(email)
        if existing_user:
            logger.warning(f"Registration failed - email already exists: {email}")
            raise ConflictError("User already exists with this email")

        try:
            password_hash = await run_in_threadpool(hash_password, password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password hashing failed during registration for {email}")
            raise InternalError() from e

        try:
            with storage_errors("registration"):
                user = await self.users.insert_user(name, email, password_hash)
        except ValueError as e:
            # Lost a race with a concurrent registration for the same email
            logger.warning(f"Registration failed - email taken concurrently: {email}")
            raise ConflictError("User already exists with this email") from e

        token = self._issue(user.id)
        logger.info(f"User registered successfully: id={user.id} email={user.email}")
        return AuthResponse(token=token, user=_convert_to_user_out(user))

    async def login(self, email: str, password: str) -> AuthResponse:
        """Exchange credentials for a token.

        Unknown email and wrong password fail with the same message.
        """
        if _blank(email) or _blank(password):
            raise ValidationError("Please provide email and password")

        logger.info(f"Authentication attempt for user: {email}")
        with storage_errors("login"):
            user = await self.users.select_user_by_email(email)

        if not user:
            logger.warning(f"Authentication failed - user not found: {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.warning(f"Authentication failed - invalid password for user: {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = self._issue(user.id)
        logger.info(f"Authentication successful for user: {email} (id={user.id})")
        return AuthResponse(token=token, user=_convert_to_user_out(user))

    async def current_user(self, token: str) -> UserOut:
        """Resolve a token to the user it names."""
        try:
            user_id = self.tokens.verify(token)
        except TokenError as e:
            logger.warning(f"Token rejected: {e}")
            raise AuthenticationError("Token is not valid") from e

        with storage_errors("current user lookup"):
            user = await self.users.select_user(user_id)
        if user is None:
            logger.warning(f"Token names a user that no longer exists: id={user_id}")
            raise AuthenticationError("User no longer exists")
        return _convert_to_user_out(user)

    def _issue(self, user_id: int) -> str:
        try:
            return self.tokens.issue(user_id)
        except Exception as e:
            logger.error(f"Token signing failed for user id={user_id}", exc_info=True)
            raise InternalError() from e


# ==================== Tasks ====================


UPDATABLE_FIELDS = frozenset({"title", "description", "status", "priority", "due_date"})


class TaskService:
    """Task operations, each scoped to the authenticated caller."""

    def __init__(self, tasks: TaskRepository):
        self.tasks = tasks

    async def list_tasks(self, user_id: int) -> list[TaskOut]:
        with storage_errors("task listing"):
            tasks = await self.tasks.list_tasks(user_id)
        logger.debug(f"Found {len(tasks)} tasks for user_id={user_id}")
        return [_convert_to_task_out(t) for t in tasks]

    async def get_task(self, user_id: int, task_id: int) -> TaskOut:
        _require_task_id(user_id, task_id)
        with storage_errors("task lookup"):
            task = await self.tasks.select_task(user_id, task_id)
        if task is None:
            logger.warning(f"Task not found for user: task_id={task_id} user_id={user_id}")
            raise NotFoundError(TASK_NOT_FOUND)
        return _convert_to_task_out(task)

    async def create_task(
        self,
        user_id: int,
        title: str,
        description: str | None = None,
        status: str | TaskStatus | None = None,
        priority: str | TaskPriority | None = None,
        due_date: date | str | None = None,
    ) -> TaskOut:
        """Create a task owned by ``user_id``."""
        title = _clean_title(title)
        values = {
            "title": title,
            "description": _clean_description(description),
            "status": _parse_status(status) if status is not None else TaskStatus.PENDING.value,
            "priority": _parse_priority(priority) if priority is not None else TaskPriority.MEDIUM.value,
            "due_date": _parse_due_date(due_date),
        }
        with storage_errors("task creation"):
            task = await self.tasks.insert_task(user_id, **values)
        logger.info(f"Task created: id={task.id} user_id={user_id}")
        return _convert_to_task_out(task)

    async def update_task(self, user_id: int, task_id: int, changes: Mapping[str, Any]) -> TaskOut:
        """Partially update an owned task.

        ``changes`` holds only the fields the caller supplied. Absent fields
        keep their stored value; ``description`` and ``due_date`` may be
        cleared with None.
        """
        _require_task_id(user_id, task_id)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = _clean_title(changes["title"])
        if "description" in changes:
            values["description"] = _clean_description(changes["description"])
        if "status" in changes:
            values["status"] = _parse_status(changes["status"])
        if "priority" in changes:
            values["priority"] = _parse_priority(changes["priority"])
        if "due_date" in changes:
            values["due_date"] = _parse_due_date(changes["due_date"])

        with storage_errors("task update"):
            task = await self.tasks.update_task(user_id, task_id, values)
        if task is None:
            logger.warning(f"Cannot update - task not found for user: task_id={task_id} user_id={user_id}")
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info(f"Task updated: id={task_id} user_id={user_id} fields={sorted(values)}")
        return _convert_to_task_out(task)

    async def delete_task(self, user_id: int, task_id: int) -> None:
        _require_task_id(user_id, task_id)
        with storage_errors("task deletion"):
            deleted = await self.tasks.delete_task(user_id, task_id)
        if not deleted:
            logger.warning(f"Cannot delete - task not found for user: task_id={task_id} user_id={user_id}")
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info(f"Task deleted: id={task_id} user_id={user_id}")
