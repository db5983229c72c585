"""Pydantic schemas for request/response validation and serialization.

Request models forbid unknown fields so a misspelled key is rejected instead
of silently ignored.
"""

from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .config import settings


# ==================== Enumerations ====================

class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ==================== Error Schemas ====================

class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str


class MessageResponse(BaseModel):
    message: str


# ==================== User Schemas ====================

class UserOut(BaseModel):
    """Public user projection. Never carries the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime | None = None


# ==================== Authentication Schemas ====================

class UserRegister(BaseModel):
    """Schema for user registration."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=settings.USER_NAME_MAX_LENGTH, description="User's full name")
    email: str = Field(..., min_length=1, max_length=settings.USER_EMAIL_MAX_LENGTH, description="User's email address")
    password: str = Field(..., min_length=1, max_length=settings.PASSWORD_MAX_LENGTH, description="User's password")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not just whitespace."""
        if not v.strip():
            raise ValueError("Name cannot be empty or only whitespace")
        return v.strip()

    @field_validator('email', 'password')
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """Kept exactly as given, but whitespace alone is not a value."""
        if not v.strip():
            raise ValueError("Cannot be empty or only whitespace")
        return v


class UserLogin(BaseModel):
    """Schema for user login credentials."""
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=1, description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")

    @field_validator('email', 'password')
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Cannot be empty or only whitespace")
        return v


class AuthResponse(BaseModel):
    """Token plus the public projection of its owner."""
    token: str
    user: UserOut


# ==================== Task Schemas ====================

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: date | None
    created_at: datetime
    updated_at: datetime


class TaskCreate(BaseModel):
    """Body of ``POST /tasks``. The owner always comes from the token."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., max_length=settings.TASK_TITLE_MAX_LENGTH)
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class TaskUpdate(BaseModel):
    """Body of ``PUT /tasks/{id}``.

    Every field is optional. Use ``model_dump(exclude_unset=True)`` to get the
    fields the client actually sent: an omitted field keeps its stored value,
    while an explicit ``null`` clears ``description`` or ``due_date``.
    """
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, max_length=settings.TASK_TITLE_MAX_LENGTH)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str | None) -> str:
        if v is None or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator('status', 'priority')
    @classmethod
    def reject_null(cls, v):
        # Only runs for values the client sent; defaults are not validated
        if v is None:
            raise ValueError("Field cannot be null")
        return v
