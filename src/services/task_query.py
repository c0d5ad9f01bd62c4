"""Task query builder: turns list filters into one owner-scoped predicate.

A `TaskFilter` is applied to a PostgREST query builder by the Supabase store
and evaluated directly against records by the in-memory store, so both
backends answer the same predicate the same way.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from src.models.filters import TaskQueryParams
from src.models.task import TaskPriority, TaskStatus, ensure_utc

SEARCH_FIELDS = ("title", "description", "assignee")


def escape_like(term: str) -> str:
    """
    Escape LIKE wildcards so the term matches literally.

    PostgREST reads `*` as `%` and has no escape for it, so each `*` becomes
    the single-character wildcard `_`. Rows found that way are re-checked
    with `TaskFilter.matches` (see `TaskFilter.needs_recheck`).
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "_")


def quote_postgrest_value(value: str) -> str:
    """Double-quote a value for a PostgREST logical filter (`or=(...)`)."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def search_clause(term: str) -> str:
    """PostgREST `or` clause: case-insensitive substring on any search field."""
    pattern = quote_postgrest_value(f"%{escape_like(term)}%")
    return ",".join(f"{field}.ilike.{pattern}" for field in SEARCH_FIELDS)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value)))


@dataclass(frozen=True)
class TaskFilter:
    """Conjunction of clauses over task records; `owner` is always present."""
    owner: str
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    search: Optional[str] = None

    def __post_init__(self):
        if not self.owner:
            raise ValueError("TaskFilter requires an owner")

    def narrow(self, **clauses: Any) -> "TaskFilter":
        """Copy with extra clauses; the owner cannot be changed."""
        if "owner" in clauses:
            raise ValueError("owner clause is fixed")
        return replace(self, **clauses)

    @property
    def needs_recheck(self) -> bool:
        """True when the database pattern is looser than the literal search term."""
        return bool(self.search) and "*" in self.search

    def apply(self, query):
        """Chain this predicate onto a PostgREST filter builder."""
        query = query.eq("owner", self.owner)
        if self.status is not None:
            query = query.eq("status", self.status.value)
        if self.priority is not None:
            query = query.eq("priority", self.priority.value)
        if self.due_from is not None:
            query = query.gte("due_date", self.due_from.isoformat())
        if self.due_to is not None:
            query = query.lte("due_date", self.due_to.isoformat())
        if self.search:
            query = query.or_(search_clause(self.search))
        return query

    def matches(self, record: dict[str, Any]) -> bool:
        """Evaluate this predicate against a stored record."""
        if record.get("owner") != self.owner:
            return False
        if self.status is not None and record.get("status") != self.status.value:
            return False
        if self.priority is not None and record.get("priority") != self.priority.value:
            return False

        if self.due_from is not None or self.due_to is not None:
            due = parse_timestamp(record.get("due_date"))
            if due is None:
                return False
            if self.due_from is not None and due < self.due_from:
                return False
            if self.due_to is not None and due > self.due_to:
                return False

        if self.search:
            needle = self.search.casefold()
            if not any(needle in (record.get(field) or "").casefold() for field in SEARCH_FIELDS):
                return False
        return True

    def describe(self) -> dict[str, Any]:
        """Clause summary for logging (search text excluded)."""
        return {
            "status": self.status.value if self.status else None,
            "priority": self.priority.value if self.priority else None,
            "due_from": self.due_from.isoformat() if self.due_from else None,
            "due_to": self.due_to.isoformat() if self.due_to else None,
            "has_search": bool(self.search),
        }


def build_task_filter(owner_id: str, params: Optional[TaskQueryParams] = None) -> TaskFilter:
    """Build the list predicate for `owner_id` from optional filter params."""
    if params is None:
        return TaskFilter(owner=owner_id)
    return TaskFilter(
        owner=owner_id,
        status=params.status,
        priority=params.priority,
        due_from=params.start_date,
        due_to=params.end_date,
        search=params.search or None,
    )
