"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes.
MAX_PASSWORD_BYTES = 72

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    return _EMAIL_RE.match(email) is not None


def is_valid_password(password: str) -> bool:
    if not password or not password.strip():
        return False
    if len(password) < MIN_PASSWORD_LENGTH:
        return False
    return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


class CredentialsRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        email = normalize_email(value)
        if not is_valid_email(email):
            raise ValueError("Invalid email")
        return email

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        # Returned untouched; hashing uses the exact input.
        if not is_valid_password(value):
            raise ValueError("Invalid password")
        return value


class RegisterRequest(CredentialsRequest):
    pass


class LoginRequest(CredentialsRequest):
    pass


class TokenResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    created_at: datetime | None = Field(default=None, alias="createdAt")


class MeResponse(BaseModel):
    user: UserResponse
