"""Account and password schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 6


class SignupRequest(BaseModel):
    """Signup request. Fields are checked by the handler so that missing
    values produce the 400 body clients expect instead of a 422."""

    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    """Request a password reset email."""

    email: str | None = None


class ResetPasswordRequest(BaseModel):
    """Set a new password for an email."""

    email: str | None = None
    password: str | None = None


class UserSummary(BaseModel):
    """Public view of a stored account."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    email: str
    is_pro: bool
    first_name: str | None = None


class ApiResponse(BaseModel):
    """Envelope shared by the account endpoints."""

    success: bool
    message: str
    error: str | None = None
    data: Any | None = None


class UserListResponse(BaseModel):
    """All stored accounts."""

    success: bool = True
    users: list[UserSummary] = Field(default_factory=list)
