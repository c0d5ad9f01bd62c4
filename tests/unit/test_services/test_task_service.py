"""Tests for owner-scoped task operations."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from freezegun import freeze_time

from src.models.task import TaskPriority, TaskStatus
from src.services import task_service
from src.services.task_store import InMemoryTaskStore
from src.utils.errors import AuthorizationError, NotFoundError, ValidationError
from tests.utils.factories import create_task_record

MISSING_ID = "0b6b8a5e-2f9e-4b3a-9d7e-1b2c3d4e5f60"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_task_forces_pending_and_owner(user, sample_task_payload):
    store = InMemoryTaskStore()
    payload = dict(sample_task_payload, status="concluída", owner="someone-else")

    with freeze_time("2025-01-01 12:00:00"):
        task = await task_service.create_task(user, payload, store=store)

    assert task.status == TaskStatus.PENDING
    assert task.completed_date is None
    assert task.owner == user.id
    assert task.priority == TaskPriority.HIGH
    assert task.created_at == datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
    assert task.due_date == datetime(2025, 1, 10, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_task_validates_before_persisting(user):
    store = AsyncMock()

    with pytest.raises(ValidationError) as exc:
        await task_service.create_task(user, {"description": "Missing required fields"}, store=store)

    assert set(exc.value.errors) >= {"title", "dueDate", "assignee"}
    store.insert.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_then_get_round_trip(user, sample_task_payload):
    store = InMemoryTaskStore()

    created = await task_service.create_task(user, sample_task_payload, store=store)
    fetched = await task_service.get_task(user, created.id, store=store)

    assert fetched == created
    assert fetched.title == "Write report"
    assert fetched.priority.value == "alta"
    assert fetched.assignee == "Ana"
    assert fetched.status.value == "pendente"
    assert fetched.due_date.date().isoformat() == "2025-01-10"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("task_id", [MISSING_ID, "not-a-uuid", "", "123"])
async def test_missing_or_malformed_id_is_not_found(user, task_id):
    store = InMemoryTaskStore()

    with pytest.raises(NotFoundError):
        await task_service.get_task(user, task_id, store=store)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_other_users_task_is_forbidden_for_every_operation(user, other_user):
    record = create_task_record(other_user.id)
    store = InMemoryTaskStore([record])

    with pytest.raises(AuthorizationError):
        await task_service.get_task(user, record["id"], store=store)
    with pytest.raises(AuthorizationError):
        await task_service.update_task(user, record["id"], {"title": "mine now"}, store=store)
    with pytest.raises(AuthorizationError):
        await task_service.complete_task(user, record["id"], store=store)
    with pytest.raises(AuthorizationError):
        await task_service.delete_task(user, record["id"], store=store)

    assert store.records[record["id"]] == record


@pytest.mark.unit
@pytest.mark.asyncio
async def test_existence_is_checked_before_ownership(user):
    """Test that a validation-bad payload on a missing task still yields 404."""
    store = InMemoryTaskStore()

    with pytest.raises(NotFoundError):
        await task_service.update_task(user, MISSING_ID, {"title": None}, store=store)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_is_partial(user):
    record = create_task_record(user.id, priority="baixa", description="keep me")
    store = InMemoryTaskStore([record])

    task = await task_service.update_task(user, record["id"], {"title": "Renamed"}, store=store)

    assert task.title == "Renamed"
    assert task.description == "keep me"
    assert task.priority == TaskPriority.LOW
    assert task.assignee == record["assignee"]
    assert task.owner == user.id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_cannot_reassign_owner_or_id(user):
    record = create_task_record(user.id)
    store = InMemoryTaskStore([record])

    task = await task_service.update_task(
        user, record["id"], {"owner": "user-bruno", "id": MISSING_ID, "title": "x"}, store=store
    )

    assert task.owner == user.id
    assert task.id == record["id"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_status_transitions_keep_completed_date_in_sync(user):
    record = create_task_record(user.id)
    store = InMemoryTaskStore([record])

    with freeze_time("2025-01-05 08:00:00"):
        done = await task_service.update_task(user, record["id"], {"status": "concluída"}, store=store)
    assert done.status == TaskStatus.COMPLETED
    assert done.completed_date == datetime(2025, 1, 5, 8, tzinfo=timezone.utc)

    reopened = await task_service.update_task(user, record["id"], {"status": "pendente"}, store=store)
    assert reopened.status == TaskStatus.PENDING
    assert reopened.completed_date is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_same_status_update_keeps_completed_date(user):
    record = create_task_record(user.id, status="concluída", completed_date="2025-01-02T10:00:00+00:00")
    store = InMemoryTaskStore([record])

    task = await task_service.update_task(user, record["id"], {"status": "concluída", "title": "t"}, store=store)

    assert task.completed_date == datetime(2025, 1, 2, 10, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_is_idempotent(user):
    """Test that completing twice keeps the first completion date."""
    record = create_task_record(user.id)
    store = InMemoryTaskStore([record])

    with freeze_time("2025-01-05 08:00:00"):
        first = await task_service.complete_task(user, record["id"], store=store)
    with freeze_time("2025-01-06 09:00:00"):
        second = await task_service.complete_task(user, record["id"], store=store)

    assert first.status == second.status == TaskStatus.COMPLETED
    assert second.completed_date == first.completed_date == datetime(2025, 1, 5, 8, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_twice(user):
    record = create_task_record(user.id)
    store = InMemoryTaskStore([record])

    assert await task_service.delete_task(user, record["id"], store=store) == {"message": "Task removed"}
    with pytest.raises(NotFoundError):
        await task_service.delete_task(user, record["id"], store=store)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_tasks_is_owner_scoped_and_filtered(user, other_user):
    store = InMemoryTaskStore([
        create_task_record(user.id, status="pendente", priority="alta", title="Write report"),
        create_task_record(user.id, status="concluída", priority="alta", title="Send report"),
        create_task_record(user.id, status="pendente", priority="baixa", title="Water plants"),
        create_task_record(other_user.id, status="pendente", priority="alta", title="Write report"),
    ])

    everything = await task_service.list_tasks(user, {"status": ["todas"], "priority": ["todas"]}, store=store)
    assert len(everything) == 3
    assert all(t.owner == user.id for t in everything)

    pending_high = await task_service.list_tasks(user, {"status": "pendente", "priority": "alta"}, store=store)
    assert [t.title for t in pending_high] == ["Write report"]

    searched = await task_service.list_tasks(user, {"search": "REPORT"}, store=store)
    assert {t.title for t in searched} == {"Write report", "Send report"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_tasks_rejects_malformed_dates(user):
    store = AsyncMock()

    with pytest.raises(ValidationError):
        await task_service.list_tasks(user, {"startDate": ["yesterday"]}, store=store)
    store.find.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_of_concurrently_deleted_task_is_not_found(user):
    record = create_task_record(user.id)
    store = AsyncMock()
    store.get.return_value = record
    store.update.return_value = None

    with pytest.raises(NotFoundError):
        await task_service.update_task(user, record["id"], {"title": "x"}, store=store)
