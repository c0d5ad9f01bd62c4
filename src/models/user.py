"""Authenticated user model."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class AuthenticatedUser(BaseModel):
    """Identity decoded from the `user` claim of an access token."""
    id: str = Field(..., min_length=1, description="User ID (task owner key)")
    name: str = Field(default="", description="Display name")
    role: str = Field(default="user", description="Role: user, admin")
    email: Optional[str] = Field(None, description="Email address")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Issuers may encode ids as numbers or ObjectId-like strings
        if isinstance(value, (int, float)):
            return str(value)
        return value
