"""
Search-history orchestration.

A search resolves the IP first and then tries to store a history row. A
failed insert is logged and dropped; the caller still gets the geo result.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from geo.schemas import GeoSnapshot
from geo.service import GeoService

from .repository import HistoryStore
from .schemas import HistoryItem

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

logger = logging.getLogger(__name__)


def clamp_limit(limit: int | None) -> int:
    """
    Page size for history listing: default when missing or non-positive,
    never more than MAX_PAGE_SIZE.
    """
    if limit is None or limit < 1:
        return DEFAULT_PAGE_SIZE
    return min(limit, MAX_PAGE_SIZE)


def _to_item(row: dict) -> HistoryItem:
    geo = row.get("geo")
    snapshot: GeoSnapshot | None = None
    if isinstance(geo, dict):
        try:
            snapshot = GeoSnapshot.model_validate(geo)
        except ValidationError:
            logger.warning("history_geo_unreadable history_id=%s", row.get("id"))

    return HistoryItem(
        id=str(row["id"]),
        ip=str(row["ip"]),
        geo=snapshot,
        created_at=row["created_at"],
    )


class HistoryService:
    def __init__(self, store: HistoryStore, geo: GeoService) -> None:
        self._store = store
        self._geo = geo

    async def _record(self, user_id: str, ip: str, geo: GeoSnapshot | None) -> None:
        try:
            await self._store.create(
                user_id=user_id,
                ip=ip,
                geo=geo.to_json() if geo is not None else None,
            )
        except Exception:
            logger.warning("history_record_failed user_id=%s ip=%s", user_id, ip, exc_info=True)

    async def search_and_record(self, user_id: str, ip: str) -> GeoSnapshot | None:
        geo = await self._geo.resolve(ip)
        await self._record(user_id, ip, geo)
        return geo

    async def list_by_user(self, user_id: str, limit: int | None = None) -> list[HistoryItem]:
        rows = await self._store.list_by_user(user_id, limit=clamp_limit(limit))
        return [_to_item(row) for row in rows]

    async def delete_many(self, user_id: str, ids: list[str]) -> int:
        if not ids:
            return 0
        # Rows owned by someone else simply do not match.
        return await self._store.delete_many(user_id, list(dict.fromkeys(ids)))
