"""Per-user task statistics and due-soon notifications."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from src.models.stats import TaskNotification, TaskStats
from src.models.task import Task, TaskPriority, TaskStatus
from src.models.user import AuthenticatedUser
from src.services.task_query import TaskFilter
from src.services.task_store import TaskStore, get_task_store
from src.utils.errors import ValidationError
from src.utils.logging import get_structured_logger, log_timing, mask_user_id
from src.utils.settings import TaskApiConfig

logger = get_structured_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def get_task_stats(
    user: AuthenticatedUser,
    store: Optional[TaskStore] = None,
    window_days: Optional[int] = None,
) -> TaskStats:
    """
    Count a user's tasks by status and priority, plus pending tasks due soon.

    Each figure is a separate store query; they are not read in one
    transaction, so a concurrent write may show up in some counts only.
    """
    store = store or get_task_store()
    window_days = TaskApiConfig.UPCOMING_WINDOW_DAYS if window_days is None else window_days
    owned = TaskFilter(owner=user.id)

    with log_timing("tasks.stats", logger=logger, user_id=mask_user_id(user.id)):
        total = await store.count(owned)
        completed = await store.count(owned.narrow(status=TaskStatus.COMPLETED))
        pending = await store.count(owned.narrow(status=TaskStatus.PENDING))

        priorities = {}
        for priority in (TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW):
            priorities[priority.value] = await store.count(owned.narrow(priority=priority))

        now = _now()
        upcoming = await store.find(owned.narrow(
            status=TaskStatus.PENDING,
            due_from=now,
            due_to=now + timedelta(days=window_days),
        ))

    return TaskStats(
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=pending,
        priorities=priorities,
        upcoming_tasks=[Task.from_record(r) for r in upcoming],
    )


def _notification_for(task: Task, today: datetime) -> TaskNotification:
    days = (task.due_date.date() - today.date()).days
    if days <= 0:
        kind, message = "due_today", f'Task "{task.title}" is due today!'
    elif days == 1:
        kind, message = "due_tomorrow", f'Task "{task.title}" is due tomorrow!'
    else:
        kind, message = "upcoming", f'Task "{task.title}" is due in {days} days.'
    return TaskNotification(task=task, days_until_due=max(days, 0), kind=kind, message=message)


def parse_window_days(raw) -> int:
    """Validate the `days` query parameter of the notification feed."""
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    if raw is None or raw == "":
        return TaskApiConfig.NOTIFICATION_WINDOW_DAYS
    try:
        days = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid request", errors={"days": "must be an integer"})
    if not 0 <= days <= TaskApiConfig.MAX_NOTIFICATION_WINDOW_DAYS:
        raise ValidationError(
            "Invalid request",
            errors={"days": f"must be between 0 and {TaskApiConfig.MAX_NOTIFICATION_WINDOW_DAYS}"},
        )
    return days


async def get_due_notifications(
    user: AuthenticatedUser,
    days: Optional[int] = None,
    store: Optional[TaskStore] = None,
) -> list[TaskNotification]:
    """Pending tasks due from the start of today (UTC) through `days` days later."""
    store = store or get_task_store()
    days = TaskApiConfig.NOTIFICATION_WINDOW_DAYS if days is None else days

    today = _now().replace(hour=0, minute=0, second=0, microsecond=0)
    window_end = today + timedelta(days=days + 1) - timedelta(microseconds=1)

    records = await store.find(TaskFilter(
        owner=user.id,
        status=TaskStatus.PENDING,
        due_from=today,
        due_to=window_end,
    ))
    return [_notification_for(Task.from_record(r), today) for r in records]
