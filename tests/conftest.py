"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock
from freezegun import freeze_time

# Set test environment variables before any src module reads them
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("TASK_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.user import AuthenticatedUser  # noqa: E402
from src.services.task_store import InMemoryTaskStore, set_task_store  # noqa: E402
from tests.utils.helpers import generate_auth_token  # noqa: E402

FROZEN_NOW = "2025-01-01 12:00:00"


@pytest.fixture
def memory_store():
    """Fresh in-memory store installed as the process-wide task store."""
    store = InMemoryTaskStore()
    set_task_store(store)
    yield store
    set_task_store(None)


@pytest.fixture
def user():
    return AuthenticatedUser(id="user-ana", name="Ana", role="user", email="ana@example.com")


@pytest.fixture
def other_user():
    return AuthenticatedUser(id="user-bruno", name="Bruno", role="user")


@pytest.fixture
def auth_headers(user):
    """Headers carrying a valid token for `user`."""
    return {"x-auth-token": generate_auth_token(user.model_dump())}


@pytest.fixture
def other_auth_headers(other_user):
    return {"x-auth-token": generate_auth_token(other_user.model_dump())}


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builder chains back to itself."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "gte", "lte", "or_", "order", "limit"):
        getattr(query, method).return_value = query
    client.table.return_value = query
    client.query = query
    return client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time(FROZEN_NOW) as frozen_time:
        yield frozen_time


@pytest.fixture
def sample_task_payload():
    """Create payload as the dashboard's task form sends it."""
    return {
        "title": "Write report",
        "description": "Quarterly numbers",
        "dueDate": "2025-01-10",
        "priority": "alta",
        "assignee": "Ana",
    }
