"""Error handling utilities."""

from typing import Optional


class TaskDashboardError(Exception):
    """Base exception for the task dashboard backend."""
    status_code = 500
    public_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_response(self) -> dict:
        """Body sent to the client."""
        return {"message": self.message}


class AuthenticationError(TaskDashboardError):
    """Credential missing or unverifiable."""
    status_code = 401
    public_message = "Token is not valid"


class AuthorizationError(TaskDashboardError):
    """Authenticated user does not own the resource."""
    status_code = 403
    public_message = "Not authorized"


class NotFoundError(TaskDashboardError):
    """Resource id does not resolve to a record."""
    status_code = 404
    public_message = "Task not found"


class ValidationError(TaskDashboardError):
    """Request payload or query parameters failed validation."""
    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, errors: Optional[dict] = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_response(self) -> dict:
        body = super().to_response()
        if self.errors:
            body["errors"] = self.errors
        return body


class InternalError(TaskDashboardError):
    """Unexpected failure. Detail is logged, never returned."""
    status_code = 500
    public_message = "Server error"

    def to_response(self) -> dict:
        return {"message": self.public_message}


class StoreError(InternalError):
    """Task store operation error."""
    pass


class ConfigurationError(InternalError):
    """Required configuration is missing."""
    pass


def from_pydantic(exc) -> ValidationError:
    """Translate a pydantic ValidationError into the API's ValidationError."""
    errors = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        errors[field] = err.get("msg", "invalid value")
    return ValidationError("Invalid request", errors=errors)
