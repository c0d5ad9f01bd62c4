"""Task store backends behind one async interface."""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from src.services import supabase_client
from src.services.task_query import TaskFilter, parse_timestamp
from src.utils.errors import ConfigurationError
from src.utils.logging import timed
from src.utils.settings import TaskApiConfig

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    """Persistent collection of task records (snake_case dicts)."""

    @abstractmethod
    async def insert(self, record: dict) -> dict:
        """Persist a new record and return it with its assigned `id`."""

    @abstractmethod
    async def get(self, task_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    async def update(self, task_id: str, changes: dict) -> Optional[dict]:
        ...

    @abstractmethod
    async def delete(self, task_id: str) -> bool:
        ...

    @abstractmethod
    async def find(self, task_filter: TaskFilter) -> list[dict]:
        """Records matching the filter, ascending by due date."""

    @abstractmethod
    async def count(self, task_filter: TaskFilter) -> int:
        ...


class SupabaseTaskStore(TaskStore):
    """Store backed by the Supabase `tasks` table."""

    @timed("tasks.insert")
    async def insert(self, record: dict) -> dict:
        record = {k: v for k, v in record.items() if k != "id"}
        return await supabase_client.insert_task_record(record)

    @timed("tasks.get")
    async def get(self, task_id: str) -> Optional[dict]:
        return await supabase_client.get_task_record(task_id)

    @timed("tasks.update")
    async def update(self, task_id: str, changes: dict) -> Optional[dict]:
        return await supabase_client.update_task_record(task_id, changes)

    @timed("tasks.delete")
    async def delete(self, task_id: str) -> bool:
        return await supabase_client.delete_task_record(task_id)

    @timed("tasks.find")
    async def find(self, task_filter: TaskFilter) -> list[dict]:
        return await supabase_client.select_task_records(task_filter)

    @timed("tasks.count")
    async def count(self, task_filter: TaskFilter) -> int:
        return await supabase_client.count_task_records(task_filter)


class InMemoryTaskStore(TaskStore):
    """Process-local store for local development and tests."""

    def __init__(self, records: Optional[list[dict]] = None):
        self.records: dict[str, dict] = {}
        for record in records or []:
            record = copy.deepcopy(record)
            record.setdefault("id", str(uuid.uuid4()))
            self.records[record["id"]] = record

    async def insert(self, record: dict) -> dict:
        record = copy.deepcopy(record)
        record["id"] = str(uuid.uuid4())
        self.records[record["id"]] = record
        return copy.deepcopy(record)

    async def get(self, task_id: str) -> Optional[dict]:
        record = self.records.get(task_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, task_id: str, changes: dict) -> Optional[dict]:
        record = self.records.get(task_id)
        if record is None:
            return None
        record.update(copy.deepcopy(changes))
        return copy.deepcopy(record)

    async def delete(self, task_id: str) -> bool:
        return self.records.pop(task_id, None) is not None

    async def find(self, task_filter: TaskFilter) -> list[dict]:
        matched = [r for r in self.records.values() if task_filter.matches(r)]
        matched.sort(key=lambda r: parse_timestamp(r.get("due_date")))
        return copy.deepcopy(matched)

    async def count(self, task_filter: TaskFilter) -> int:
        return sum(1 for r in self.records.values() if task_filter.matches(r))


_store: Optional[TaskStore] = None


def get_task_store() -> TaskStore:
    """Get or create the configured store singleton."""
    global _store

    if _store is None:
        backend = TaskApiConfig.TASK_STORE_BACKEND
        if backend == "supabase":
            _store = SupabaseTaskStore()
        elif backend == "memory":
            _store = InMemoryTaskStore()
        else:
            raise ConfigurationError(f"Unknown TASK_STORE_BACKEND: {backend}")
        logger.info("Task store initialized", extra={"backend": backend})

    return _store


def set_task_store(store: Optional[TaskStore]) -> None:
    """Replace (or reset, with None) the store singleton."""
    global _store
    _store = store
