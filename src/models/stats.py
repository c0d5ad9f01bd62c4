"""Statistics and notification models."""

from typing import Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.task import Task, TaskPriority


class TaskStats(BaseModel):
    """Per-user task summary."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_tasks: int = Field(default=0, ge=0)
    completed_tasks: int = Field(default=0, ge=0)
    pending_tasks: int = Field(default=0, ge=0)
    priorities: dict[str, int] = Field(
        default_factory=lambda: {p.value: 0 for p in (TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW)},
        description="Counts keyed by priority value, independent of status"
    )
    upcoming_tasks: list[Task] = Field(default_factory=list)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TaskNotification(BaseModel):
    """A due-soon reminder for a pending task."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task: Task
    days_until_due: int = Field(..., ge=0)
    kind: Literal["due_today", "due_tomorrow", "upcoming"]
    message: str

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
