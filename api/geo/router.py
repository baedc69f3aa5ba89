"""
Geo API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from auth.dependencies import CurrentUser, get_current_user
from core import ip as ip_utils
from core.errors import AppError

from .schemas import GeoSnapshot
from .service import GeoService

router = APIRouter()


def get_geo_service(request: Request) -> GeoService:
    return request.app.state.geo_service


def require_ip(value: object) -> str:
    """
    Normalize a user-supplied IP or fail with 400 INVALID_IP.
    """
    ip = ip_utils.normalize(value)
    if ip is None or not ip_utils.is_valid(ip):
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid IP address", "INVALID_IP")
    return ip


def _geo_body(geo: GeoSnapshot | None) -> dict:
    return {"geo": geo.to_json() if geo is not None else None}


@router.get("/geo/self")
async def geo_self(
    request: Request,
    _: CurrentUser = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
) -> dict:
    geo = await service.resolve(ip_utils.client_ip(request))
    return _geo_body(geo)


@router.get("/geo/{ip}")
async def geo_by_ip(
    ip: str,
    _: CurrentUser = Depends(get_current_user),
    service: GeoService = Depends(get_geo_service),
) -> dict:
    geo = await service.resolve(require_ip(ip))
    return _geo_body(geo)
