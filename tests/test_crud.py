"""
Unit tests for the repository layer.
Runs against the in-memory SQLite test database.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError
from task_tracker.crud import TaskRepository, UserRepository
from task_tracker.models import Task, User


@pytest.fixture
def users(session_factory):
    return UserRepository(session_factory)


@pytest.fixture
def tasks(session_factory):
    return TaskRepository(session_factory)


async def _task(tasks: TaskRepository, user_id: int, title: str, **overrides):
    values = {
        "description": None,
        "status": "pending",
        "priority": "medium",
        "due_date": None,
    }
    values.update(overrides)
    return await tasks.insert_task(user_id, title, **values)


@pytest.mark.asyncio
class TestUserRepository:

    async def test_insert_user_success(self, users):
        user = await users.insert_user("Test User", "test@example.com", "hash")

        assert user.id is not None
        assert user.name == "Test User"
        assert user.email == "test@example.com"
        assert user.created_at is not None

    async def test_insert_user_duplicate_email(self, users):
        """Duplicate email raises ValueError and leaves a single row."""
        first = await users.insert_user("User 1", "duplicate@example.com", "hash")

        with pytest.raises(ValueError, match="duplicate email"):
            await users.insert_user("User 2", "duplicate@example.com", "hash")

        found = await users.select_user_by_email("duplicate@example.com")
        assert found.id == first.id
        assert found.name == "User 1"

    async def test_select_by_email_is_case_sensitive(self, users):
        await users.insert_user("Test User", "Test@Example.com", "hash")

        assert await users.select_user_by_email("Test@Example.com") is not None
        assert await users.select_user_by_email("test@example.com") is None

    async def test_select_user_by_id(self, users):
        created = await users.insert_user("Test User", "test@example.com", "hash")

        user = await users.select_user(created.id)
        assert user is not None
        assert user.email == "test@example.com"

    async def test_select_user_not_found(self, users):
        assert await users.select_user(99999) is None


@pytest.mark.asyncio
class TestTaskRepository:

    async def test_insert_task(self, tasks):
        task = await _task(tasks, 1, "Buy milk", priority="high", due_date=date(2030, 1, 2))

        assert task.id is not None
        assert task.user_id == 1
        assert task.title == "Buy milk"
        assert task.priority == "high"
        assert task.due_date == date(2030, 1, 2)
        assert task.created_at == task.updated_at

    async def test_list_tasks_newest_first(self, tasks):
        for title in ("first", "second", "third"):
            await _task(tasks, 1, title)

        listed = await tasks.list_tasks(1)
        assert [t.title for t in listed] == ["third", "second", "first"]

    async def test_list_tasks_scoped_to_owner(self, tasks):
        await _task(tasks, 1, "mine")
        await _task(tasks, 2, "theirs")

        assert [t.title for t in await tasks.list_tasks(1)] == ["mine"]
        assert [t.title for t in await tasks.list_tasks(2)] == ["theirs"]
        assert await tasks.list_tasks(3) == []

    async def test_select_task_requires_owner(self, tasks):
        task = await _task(tasks, 1, "mine")

        assert (await tasks.select_task(1, task.id)).title == "mine"
        assert await tasks.select_task(2, task.id) is None
        assert await tasks.select_task(1, 99999) is None

    async def test_update_task_writes_only_given_fields(self, tasks):
        task = await _task(tasks, 1, "Buy milk", description="2 litres", priority="low")
        await asyncio.sleep(0.01)

        updated = await tasks.update_task(1, task.id, {"status": "completed"})

        assert updated.status == "completed"
        assert updated.title == "Buy milk"
        assert updated.description == "2 litres"
        assert updated.priority == "low"
        assert updated.updated_at > task.updated_at
        assert updated.created_at == task.created_at

    async def test_update_task_with_no_changes_bumps_updated_at(self, tasks):
        task = await _task(tasks, 1, "Buy milk")
        await asyncio.sleep(0.01)

        updated = await tasks.update_task(1, task.id, {})
        assert updated.updated_at > task.updated_at

    async def test_update_task_other_owner_returns_none(self, tasks):
        task = await _task(tasks, 1, "mine")

        assert await tasks.update_task(2, task.id, {"title": "hijacked"}) is None
        assert (await tasks.select_task(1, task.id)).title == "mine"

    async def test_delete_task(self, tasks):
        task = await _task(tasks, 1, "mine")

        assert await tasks.delete_task(1, task.id) is True
        assert await tasks.select_task(1, task.id) is None
        assert await tasks.delete_task(1, task.id) is False

    async def test_delete_task_other_owner(self, tasks):
        task = await _task(tasks, 1, "mine")

        assert await tasks.delete_task(2, task.id) is False
        assert await tasks.select_task(1, task.id) is not None


@pytest.mark.asyncio
class TestSchemaConstraints:
    """The table definitions enforce what migration 001 enforces."""

    @pytest.mark.parametrize("field,value", [("status", "done"), ("priority", "urgent")])
    async def test_insert_task_rejects_unknown_enum_value(self, tasks, field, value):
        with pytest.raises(IntegrityError):
            await _task(tasks, 1, "Buy milk", **{field: value})

        assert await tasks.list_tasks(1) == []

    async def test_update_task_rejects_unknown_status(self, tasks):
        task = await _task(tasks, 1, "Buy milk")

        with pytest.raises(IntegrityError):
            await tasks.update_task(1, task.id, {"status": "archived"})

        stored = await tasks.select_task(1, task.id)
        assert stored.status == "pending"

    async def test_indexes_match_migration(self):
        task_indexes = {index.name for index in Task.__table__.indexes}
        user_indexes = {index.name: index for index in User.__table__.indexes}

        assert "ix_tasks_user_id_created_at" in task_indexes
        assert "ix_tasks_user_id" not in task_indexes
        assert user_indexes["ix_users_email"].unique
