"""Database CRUD operations for users and tasks.

Repositories receive the session factory at construction. Every task query
filters on ``user_id`` as well as ``id``: a row owned by someone else is
reported exactly like a missing one.
"""

from typing import Any
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from .db import SessionFactory
from .models import Task, User, utcnow
from .logger import logger


# ==================== Users ====================

class UserRepository:
    """Credential store for user identity records."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def insert_user(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new user. Raises ValueError on duplicate email."""
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    user = User(name=name, email=email, password_hash=password_hash)
                    session.add(user)
                await session.refresh(user)
                return user
            except IntegrityError as e:
                logger.debug(f"Duplicate email rejected: {email}")
                raise ValueError("duplicate email") from e

    async def select_user_by_email(self, email: str) -> User | None:
        """Exact, case-sensitive lookup by email."""
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalars().first()

    async def select_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            return await session.get(User, user_id)


# ==================== Tasks ====================

class TaskRepository:
    """Ownership-scoped CRUD on the tasks table."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    @staticmethod
    def _owned(user_id: int, task_id: int):
        return select(Task).where(Task.id == task_id, Task.user_id == user_id)

    async def list_tasks(self, user_id: int) -> list[Task]:
        """All tasks of ``user_id``, newest first."""
        async with self._session_factory() as session:
            stmt = (
                select(Task)
                .where(Task.user_id == user_id)
                .order_by(Task.created_at.desc(), Task.id.desc())
            )
            result = await session.execute(stmt)
            tasks = list(result.scalars().all())
            logger.debug(f"Query executed: returned {len(tasks)} tasks for user_id={user_id}")
            return tasks

    async def select_task(self, user_id: int, task_id: int) -> Task | None:
        async with self._session_factory() as session:
            result = await session.execute(self._owned(user_id, task_id))
            return result.scalars().first()

    async def insert_task(
        self,
        user_id: int,
        title: str,
        description: str | None,
        status: str,
        priority: str,
        due_date,
    ) -> Task:
        async with self._session_factory() as session:
            async with session.begin():
                now = utcnow()
                task = Task(
                    user_id=user_id,
                    title=title,
                    description=description,
                    status=status,
                    priority=priority,
                    due_date=due_date,
                    created_at=now,
                    updated_at=now,
                )
                session.add(task)
            await session.refresh(task)
            return task

    async def update_task(self, user_id: int, task_id: int, changes: dict[str, Any]) -> Task | None:
        """Apply ``changes`` to an owned task and bump ``updated_at``.

        Only the keys present in ``changes`` are written. Returns None when the
        task does not exist for this user.
        """
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(self._owned(user_id, task_id).with_for_update())
                task = result.scalars().first()
                if task is None:
                    return None
                for field, value in changes.items():
                    setattr(task, field, value)
                task.updated_at = utcnow()
            await session.refresh(task)
            return task

    async def delete_task(self, user_id: int, task_id: int) -> bool:
        """Delete an owned task. Returns False when nothing matched."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(Task).where(Task.id == task_id, Task.user_id == user_id)
                )
            return result.rowcount > 0
