"""Task list filter parameters."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.models.task import TaskPriority, TaskStatus, ensure_utc

ALL_SENTINEL = "todas"


class TaskQueryParams(BaseModel):
    """Optional filters for listing tasks.

    `todas` (or an empty value) on status/priority means no filter on that field.
    Malformed dates are rejected rather than silently ignored.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    start_date: Optional[datetime] = Field(None, description="Lower bound on due date (inclusive)")
    end_date: Optional[datetime] = Field(None, description="Upper bound on due date (inclusive)")
    search: Optional[str] = Field(None, max_length=200)

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _drop_sentinel(cls, value):
        if value is None or value == "" or value == ALL_SENTINEL:
            return None
        return value

    @field_validator("start_date", "end_date", "search", mode="before")
    @classmethod
    def _blank_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize(cls, value):
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self

    @classmethod
    def from_query(cls, query: dict) -> "TaskQueryParams":
        """Build from a parsed query string (values may be lists)."""
        flat = {}
        for key, value in (query or {}).items():
            if isinstance(value, (list, tuple)):
                value = value[0] if value else None
            flat[key] = value
        return cls.model_validate(flat)
