"""Account and token schemas."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[\w.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    display_name: str | None = Field(None, max_length=100)

    @field_validator("display_name")
    @classmethod
    def _blank_display_name(cls, value: str | None) -> str | None:
        value = (value or "").strip()
        return value or None


class UserLogin(BaseModel):
    """Login by username or email."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class UserResponse(BaseModel):
    """Public account info; ``role`` decides who may upload tests."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    display_name: str | None = None
    role: Literal["user", "admin"]
    is_active: bool
    created_at: datetime


class MessageResponse(BaseModel):
    message: str
