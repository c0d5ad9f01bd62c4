"""Supabase client wrapper with async context manager support."""

import os
import logging
from typing import Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

from src.utils.errors import StoreError, ConfigurationError
from src.utils.settings import TaskApiConfig

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def _tasks_table(client: Client):
    return client.table(TaskApiConfig.TASKS_TABLE)


# Tasks table operations
async def insert_task_record(task_data: dict) -> dict:
    """Insert a task row; the database assigns `id`."""
    async with SupabaseClient() as client:
        try:
            result = _tasks_table(client).insert(task_data).execute()
        except Exception as e:
            raise StoreError(f"Failed to create task: {e}") from e
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise StoreError("Failed to create task: no data returned")


async def get_task_record(task_id: str) -> Optional[dict]:
    """Get a task row by ID."""
    async with SupabaseClient() as client:
        try:
            result = _tasks_table(client).select("*").eq("id", task_id).limit(1).execute()
        except Exception as e:
            raise StoreError(f"Failed to get task: {e}") from e
        return result.data[0] if result.data else None


async def update_task_record(task_id: str, updates: dict) -> Optional[dict]:
    """Update a task row. Returns None if the row vanished."""
    async with SupabaseClient() as client:
        try:
            result = _tasks_table(client).update(updates).eq("id", task_id).execute()
        except Exception as e:
            raise StoreError(f"Failed to update task: {e}") from e
        return result.data[0] if result.data else None


async def delete_task_record(task_id: str) -> bool:
    """Hard-delete a task row. Returns whether a row was removed."""
    async with SupabaseClient() as client:
        try:
            result = _tasks_table(client).delete().eq("id", task_id).execute()
        except Exception as e:
            raise StoreError(f"Failed to delete task: {e}") from e
        return bool(result.data)


async def select_task_records(task_filter) -> list[dict]:
    """Rows matching a TaskFilter, ascending by due date."""
    async with SupabaseClient() as client:
        try:
            query = task_filter.apply(_tasks_table(client).select("*"))
            result = query.order("due_date").execute()
        except Exception as e:
            raise StoreError(f"Failed to query tasks: {e}") from e
        rows = result.data if result.data else []
    if task_filter.needs_recheck:
        rows = [r for r in rows if task_filter.matches(r)]
    return rows


async def count_task_records(task_filter) -> int:
    """Number of rows matching a TaskFilter."""
    if task_filter.needs_recheck:
        return len(await select_task_records(task_filter))

    async with SupabaseClient() as client:
        try:
            query = task_filter.apply(_tasks_table(client).select("id", count="exact", head=True))
            result = query.execute()
        except Exception as e:
            raise StoreError(f"Failed to count tasks: {e}") from e
        return result.count or 0
