"""Owner-scoped task operations.

Every operation on a single task loads it first (404 when absent or when the
id is malformed) and only then checks ownership (403). That order is fixed.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.models.filters import TaskQueryParams
from src.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from src.models.user import AuthenticatedUser
from src.services.task_query import build_task_filter
from src.services.task_store import TaskStore, get_task_store
from src.utils.errors import AuthorizationError, NotFoundError, from_pydantic
from src.utils.logging import get_structured_logger, mask_user_id, sanitize_message_text

logger = get_structured_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_task_id(task_id: Any) -> bool:
    """Task ids are UUID strings; anything else can never resolve."""
    if not isinstance(task_id, str) or not task_id:
        return False
    try:
        uuid.UUID(task_id)
    except ValueError:
        return False
    return True


def _validate(model, data: Any):
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        raise from_pydantic(e) from e


def _parse_query(query: Optional[dict]) -> TaskQueryParams:
    try:
        return TaskQueryParams.from_query(query or {})
    except PydanticValidationError as e:
        raise from_pydantic(e) from e


async def load_owned_task(user: AuthenticatedUser, task_id: str, store: Optional[TaskStore] = None) -> Task:
    """Existence check, then ownership check."""
    store = store or get_task_store()

    if not is_valid_task_id(task_id):
        raise NotFoundError()

    record = await store.get(task_id)
    if record is None:
        raise NotFoundError()

    if str(record.get("owner")) != user.id:
        logger.warning(
            "Task access denied",
            task_id=task_id,
            user_id=mask_user_id(user.id),
        )
        raise AuthorizationError()

    return Task.from_record(record)


async def list_tasks(
    user: AuthenticatedUser,
    query: Optional[dict] = None,
    store: Optional[TaskStore] = None,
) -> list[Task]:
    """User's tasks matching the optional filters, ascending by due date."""
    store = store or get_task_store()
    params = query if isinstance(query, TaskQueryParams) else _parse_query(query)
    task_filter = build_task_filter(user.id, params)

    records = await store.find(task_filter)
    logger.info(
        "Listed tasks",
        user_id=mask_user_id(user.id),
        result_count=len(records),
        search=sanitize_message_text(params.search or ""),
        **task_filter.describe(),
    )
    return [Task.from_record(r) for r in records]


async def get_task(user: AuthenticatedUser, task_id: str, store: Optional[TaskStore] = None) -> Task:
    return await load_owned_task(user, task_id, store)


async def create_task(user: AuthenticatedUser, payload: Any, store: Optional[TaskStore] = None) -> Task:
    """Validate and persist a new pending task owned by `user`."""
    store = store or get_task_store()
    data = _validate(TaskCreate, payload)

    record = data.model_dump(mode="json")
    record.update({
        "status": TaskStatus.PENDING.value,
        "completed_date": None,
        "owner": user.id,
        "created_at": _now().isoformat(),
    })

    created = await store.insert(record)
    task = Task.from_record(created)
    logger.info("Task created", task_id=task.id, user_id=mask_user_id(user.id), priority=task.priority.value)
    return task


def _status_changes(current: Task, new_status: TaskStatus) -> dict:
    """Fields implied by moving `current` to `new_status` (empty when unchanged)."""
    if new_status == current.status:
        return {}
    changes: dict[str, Any] = {"status": new_status.value}
    if new_status == TaskStatus.COMPLETED:
        changes["completed_date"] = _now().isoformat()
    else:
        changes["completed_date"] = None
    return changes


async def _persist(store: TaskStore, task: Task, changes: dict) -> Task:
    if not changes:
        return task
    updated = await store.update(task.id, changes)
    if updated is None:
        # Deleted between load and write
        raise NotFoundError()
    return Task.from_record(updated)


async def update_task(
    user: AuthenticatedUser,
    task_id: str,
    payload: Any,
    store: Optional[TaskStore] = None,
) -> Task:
    """Apply a partial update; omitted fields keep their values."""
    store = store or get_task_store()
    current = await load_owned_task(user, task_id, store)
    data = _validate(TaskUpdate, payload)

    changes = data.changes()
    new_status = changes.pop("status", None)
    if new_status is not None:
        changes.update(_status_changes(current, TaskStatus(new_status)))

    task = await _persist(store, current, changes)
    logger.info("Task updated", task_id=task.id, fields=sorted(changes))
    return task


async def complete_task(user: AuthenticatedUser, task_id: str, store: Optional[TaskStore] = None) -> Task:
    """Mark a task completed. Already-completed tasks keep their completion date."""
    store = store or get_task_store()
    current = await load_owned_task(user, task_id, store)

    task = await _persist(store, current, _status_changes(current, TaskStatus.COMPLETED))
    logger.info("Task completed", task_id=task.id, already_completed=current.status == TaskStatus.COMPLETED)
    return task


async def delete_task(user: AuthenticatedUser, task_id: str, store: Optional[TaskStore] = None) -> dict:
    store = store or get_task_store()
    task = await load_owned_task(user, task_id, store)

    if not await store.delete(task.id):
        raise NotFoundError()
    logger.info("Task deleted", task_id=task.id, user_id=mask_user_id(user.id))
    return {"message": "Task removed"}
