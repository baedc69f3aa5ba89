"""
Search-history persistence (raw SQL).
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from core import db


class HistoryStore(Protocol):
    async def create(self, *, user_id: str, ip: str, geo: dict[str, Any] | None) -> dict: ...

    async def list_by_user(self, user_id: str, *, limit: int) -> list[dict]: ...

    async def delete_many(self, user_id: str, ids: list[str]) -> int: ...


def _json_dumps(value: object) -> str:
    return json.dumps(value, ensure_ascii=True)


def _decode_geo(row: dict) -> dict:
    # asyncpg hands JSONB back as text unless a codec is registered.
    geo = row.get("geo")
    if isinstance(geo, str):
        row["geo"] = json.loads(geo)
    return row


def _affected_rows(command_status: str) -> int:
    # "DELETE 3" -> 3
    try:
        return int((command_status or "").rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class HistoryRepository:
    async def create(self, *, user_id: str, ip: str, geo: dict[str, Any] | None) -> dict:
        row = await db.fetch_one(
            """
            INSERT INTO search_histories (user_id, ip, geo)
            VALUES ($1, $2, $3::jsonb)
            RETURNING id, user_id, ip, geo, created_at
            """,
            user_id,
            ip,
            _json_dumps(geo) if geo is not None else None,
        )
        if row is None:
            raise RuntimeError("Failed to insert search history.")
        return _decode_geo(row)

    async def list_by_user(self, user_id: str, *, limit: int) -> list[dict]:
        rows = await db.fetch_all(
            """
            SELECT id, ip, geo, created_at
            FROM search_histories
            WHERE user_id = $1
            ORDER BY created_at DESC, id DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        return [_decode_geo(row) for row in rows]

    async def delete_many(self, user_id: str, ids: list[str]) -> int:
        command_status = await db.execute(
            """
            DELETE FROM search_histories
            WHERE user_id = $1
              AND id = ANY($2::text[])
            """,
            user_id,
            ids,
        )
        return _affected_rows(command_status)
