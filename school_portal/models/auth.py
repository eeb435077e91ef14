"""Auth and user-management request/response models with validation."""

import re
from typing import Optional

from pydantic import Field, field_validator

from school_portal.models.account import Account, CamelModel, Role

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(v: str) -> str:
    """Trim and lower-case an email, rejecting malformed addresses."""
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v


class RegisterRequest(CamelModel):
    """Self-registration payload.

    Attributes:
        name: Display name (2-50 chars)
        email: Unique email address (case-insensitive)
        password: Plain-text password, length checked by the auth workflow
        age: Optional age (0-120)
    """

    name: str = Field(..., min_length=2, max_length=50)
    email: str
    password: str = Field(..., min_length=1)
    age: Optional[int] = Field(default=None, ge=0, le=120)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)


class CreateUserRequest(RegisterRequest):
    """Admin request to create a single account."""

    role: Role = Role.STUDENT


class LoginRequest(CamelModel):
    """Login credentials."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordRequest(CamelModel):
    """Password change for the authenticated account."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    """Request to exchange a refresh token for a new token pair."""

    refresh_token: str = Field(..., min_length=1)


class UpdateUserRequest(CamelModel):
    """Partial account update. Only provided fields are changed.

    ``role`` and ``is_active`` may only be changed by an admin.
    """

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    age: Optional[int] = Field(default=None, ge=0, le=120)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class AuthData(CamelModel):
    """Registration result."""

    user: Account
    token: str


class LoginData(CamelModel):
    """Login result with a fresh token pair."""

    user: Account
    token: str
    refresh_token: str


class TokenPair(CamelModel):
    """Refresh result."""

    token: str
    refresh_token: str


class ProfileData(CamelModel):
    user: Account
