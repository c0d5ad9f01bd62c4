"""Environment-driven settings for the task API."""

import os


class TaskApiConfig:
    """Static settings read from the environment at import time."""

    TASK_STORE_BACKEND = os.environ.get("TASK_STORE_BACKEND", "supabase").lower()
    TASKS_TABLE = os.environ.get("TASKS_TABLE", "tasks")
    AUTH_TOKEN_HEADER = os.environ.get("AUTH_TOKEN_HEADER", "x-auth-token")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    UPCOMING_WINDOW_DAYS = int(os.environ.get("UPCOMING_WINDOW_DAYS", "7"))
    NOTIFICATION_WINDOW_DAYS = int(os.environ.get("NOTIFICATION_WINDOW_DAYS", "3"))
    MAX_NOTIFICATION_WINDOW_DAYS = 30
    SERVICE_NAME = "task-dashboard-backend"
