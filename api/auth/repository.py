"""
Auth persistence helpers.
"""

from __future__ import annotations

from typing import Protocol

from core import db

from .schemas import normalize_email


class UserStore(Protocol):
    async def get_by_email(self, email: str) -> dict | None: ...

    async def get_by_id(self, user_id: str) -> dict | None: ...

    async def create(self, *, email: str, password_hash: str) -> dict: ...


class UserRepository:
    """
    `users` table access. UNIQUE(email) is enforced by the database.
    """

    async def get_by_email(self, email: str) -> dict | None:
        return await db.fetch_one(
            """
            SELECT id, email, password_hash, created_at
            FROM users
            WHERE email = $1
            """,
            normalize_email(email),
        )

    async def get_by_id(self, user_id: str) -> dict | None:
        return await db.fetch_one(
            """
            SELECT id, email, password_hash, created_at
            FROM users
            WHERE id = $1
            """,
            user_id,
        )

    async def create(self, *, email: str, password_hash: str) -> dict:
        row = await db.fetch_one(
            """
            INSERT INTO users (email, password_hash)
            VALUES ($1, $2)
            RETURNING id, email, created_at
            """,
            normalize_email(email),
            password_hash,
        )
        if row is None:
            raise RuntimeError("Failed to create user.")
        return row
