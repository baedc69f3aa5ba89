"""
Auth business logic.
"""

from __future__ import annotations

from fastapi import status

from core.errors import AppError, conflict_from_unique_violation, is_unique_violation, unauthorized

from . import schemas
from .repository import UserStore
from .security import PasswordHasher, TokenService


def invalid_credentials() -> AppError:
    # Same error for unknown email and wrong password.
    return AppError(status.HTTP_401_UNAUTHORIZED, "Invalid credentials", "INVALID_CREDENTIALS")


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=str(user_row["id"]),
        email=str(user_row["email"]),
        created_at=user_row.get("created_at"),
    )


class AuthService:
    def __init__(self, users: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._users = users
        self._hasher = hasher
        self._tokens = tokens

    def _issue_token(self, user_row: dict) -> str:
        return self._tokens.sign(subject=str(user_row["id"]), email=str(user_row["email"]))

    async def register(self, payload: schemas.RegisterRequest) -> str:
        email = schemas.normalize_email(payload.email)

        existing = await self._users.get_by_email(email)
        if existing is not None:
            raise AppError(status.HTTP_409_CONFLICT, "Email already registered", "EMAIL_EXISTS")

        password_hash = await self._hasher.hash(payload.password)
        try:
            user_row = await self._users.create(email=email, password_hash=password_hash)
        except Exception as exc:
            # Concurrent registrations race on the UNIQUE(email) constraint.
            if is_unique_violation(exc):
                raise conflict_from_unique_violation(exc) from exc
            raise

        return self._issue_token(user_row)

    async def login(self, payload: schemas.LoginRequest) -> str:
        user_row = await self._users.get_by_email(schemas.normalize_email(payload.email))
        if user_row is None:
            # Unknown emails pay the same bcrypt cost as wrong passwords.
            await self._hasher.verify(payload.password, await self._hasher.dummy_hash())
            raise invalid_credentials()

        is_valid = await self._hasher.verify(payload.password, str(user_row.get("password_hash") or ""))
        if not is_valid:
            raise invalid_credentials()

        return self._issue_token(user_row)

    async def me(self, user_id: str) -> schemas.UserResponse:
        user_row = await self._users.get_by_id(user_id)
        if user_row is None:
            raise unauthorized()
        return _to_user_response(user_row)
