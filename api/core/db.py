"""
asyncpg pool for the users and search_histories tables.

`main.create_app` opens the pool in its lifespan when it is wired with the
Postgres repositories. Queries use positional placeholders ($1, $2, ...).
"""

from __future__ import annotations

from typing import Any

import asyncpg

_pool: asyncpg.Pool | None = None


async def init_pool(database_url: str | None) -> None:
    global _pool
    if _pool is not None:
        return

    dsn = (database_url or "").strip()
    if not dsn:
        raise RuntimeError("DATABASE_URL is not set.")

    _pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=5, command_timeout=30)


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


def _require_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool is not open.")
    return _pool


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    row = await _require_pool().fetchrow(sql, *args)
    return dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    return [dict(row) for row in await _require_pool().fetch(sql, *args)]


async def execute(sql: str, *args: Any) -> str:
    """
    Returns the command status tag, e.g. "DELETE 3"; history deletes count
    rows from it.
    """
    return await _require_pool().execute(sql, *args)
