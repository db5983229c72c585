"""SQLAlchemy ORM models for the users and tasks tables."""

from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import func
from .db import Base
from .config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Largest value an Integer (int4) primary key can hold
MAX_ROW_ID = 2**31 - 1


class User(Base):
    """Registered account. Only created through registration."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(settings.USER_NAME_MAX_LENGTH), nullable=False)
    # Case-sensitive: stored and compared exactly as given. Backed by a unique index.
    email = Column(String(settings.USER_EMAIL_MAX_LENGTH), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class Task(Base):
    """A to-do item owned by exactly one user."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(settings.TASK_TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    priority = Column(String(20), nullable=False, default="medium", server_default="medium")
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'in_progress', 'completed')", name="ck_tasks_status"),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"),
        # Listing is always "tasks of one user, newest first"
        Index("ix_tasks_user_id_created_at", "user_id", created_at.desc()),
    )
