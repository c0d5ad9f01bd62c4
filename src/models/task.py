"""Task models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TaskStatus(str, Enum):
    """Task status values, as stored and sent on the wire."""
    PENDING = "pendente"
    COMPLETED = "concluída"


class TaskPriority(str, Enum):
    """Task priority values."""
    LOW = "baixa"
    MEDIUM = "média"
    HIGH = "alta"


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps (including date-only input) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_API_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
    extra="ignore",
)


class Task(BaseModel):
    """Stored task. Records use snake_case, the API emits camelCase."""
    model_config = _API_CONFIG

    id: str = Field(..., description="Store-assigned task ID")
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    due_date: datetime = Field(..., description="Due date")
    completed_date: Optional[datetime] = Field(None, description="Set only while status is completed")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    assignee: str = Field(..., min_length=1, description="Responsible party")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    owner: str = Field(..., description="ID of the user who created the task")
    created_at: datetime = Field(..., description="Creation timestamp")

    @field_validator("due_date", "completed_date", "created_at")
    @classmethod
    def normalize_dates(cls, value):
        return ensure_utc(value)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Task":
        return cls.model_validate(record)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TaskCreate(BaseModel):
    """Payload accepted when creating a task.

    Status, owner and timestamps are never taken from the client.
    """
    model_config = _API_CONFIG

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee: str = Field(..., min_length=1)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return ensure_utc(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value):
        if value is None or value == "":
            return TaskPriority.MEDIUM
        return value


class TaskUpdate(BaseModel):
    """Partial update payload. Only fields present in the payload are applied."""
    model_config = _API_CONFIG

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    assignee: Optional[str] = Field(None, min_length=1)
    status: Optional[TaskStatus] = None

    @field_validator("title", "due_date", "priority", "assignee", "status")
    @classmethod
    def _not_null(cls, value):
        # Only runs for fields present in the payload
        if value is None:
            raise ValueError("may not be null")
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value

    def changes(self) -> dict[str, Any]:
        """Snake_case record fields explicitly provided by the client."""
        return self.model_dump(mode="json", include=self.model_fields_set)
