"""
Pydantic models for accounts and authentication.

Defines the user role enumeration, the signup/login/refresh payloads
and the public user representation.  The password hash never appears
in a response model.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .common import ApiModel

PASSWORD_MIN_LENGTH = 8


class Role(str, Enum):
    CLIENT = "CLIENT"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class SignupRequest(ApiModel):
    """Schema for registering a user.

    ``role`` defaults to ``CLIENT``.  It is fixed at creation; there is
    no endpoint that changes it afterwards.
    """

    name: str = Field(..., min_length=1, examples=["Jane Doe"])
    email: EmailStr = Field(..., examples=["jane@example.com"])
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        examples=["strongpassword"],
        description=f"At least {PASSWORD_MIN_LENGTH} characters",
    )
    role: Role = Role.CLIENT

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class RefreshRequest(ApiModel):
    refresh_token: str = Field(..., min_length=1, description="A token that has not expired yet")


class UserRead(ApiModel):
    """Public representation of a user."""

    id: int
    name: str
    email: str
    role: Role
    created_at: Optional[datetime] = None


class AuthResponse(ApiModel):
    """Returned by signup and login."""

    message: str
    token: str
    user: UserRead


class TokenResponse(ApiModel):
    token: str
