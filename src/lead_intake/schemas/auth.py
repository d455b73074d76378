"""Authentication and user Pydantic v2 schemas.

Defines request/response schemas for the demo email login.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Demo login: an email identifies the user, no password."""

    email: EmailStr
    name: str | None = Field(default=None, max_length=100)


class TokenResponse(BaseModel):
    """Session token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class UserResponse(BaseModel):
    """User information response."""

    id: UUID
    email: str
    name: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
