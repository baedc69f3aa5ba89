"""
Search-history API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from auth.dependencies import CurrentUser, get_current_user
from geo.router import require_ip

from . import schemas
from .service import HistoryService

router = APIRouter()


def get_history_service(request: Request) -> HistoryService:
    return request.app.state.history_service


def _parse_limit(raw: str | None) -> int | None:
    # Lenient: anything that is not an integer means "use the default".
    try:
        return int((raw or "").strip())
    except ValueError:
        return None


@router.post("/history/search")
async def search(
    payload: schemas.SearchRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
) -> dict:
    ip = require_ip(payload.ip)
    geo = await service.search_and_record(current_user.id, ip)
    return {"geo": geo.to_json() if geo is not None else None}


@router.get("/history")
async def list_history(
    limit: str | None = Query(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
) -> dict:
    items = await service.list_by_user(current_user.id, limit=_parse_limit(limit))
    return {"items": [item.to_json() for item in items]}


@router.delete("/history")
async def delete_history(
    payload: schemas.DeleteRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
) -> dict:
    deleted = await service.delete_many(current_user.id, payload.ids)
    return {"deleted": deleted}
