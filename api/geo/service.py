"""
Geo resolution.

Flow:
1) Skip empty and private/reserved addresses (no provider call)
2) Ask the lookup client for the provider payload, bounded by a timeout
3) Coerce every field defensively into a `GeoSnapshot`

`GeoService.resolve` never raises: any failure is logged and gives None, so
callers can treat geolocation as best-effort enrichment.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Protocol

from core import ip as ip_utils
from core.config import DEFAULT_IPINFO_TIMEOUT_S

from .schemas import GEO_SOURCE, GeoSnapshot

logger = logging.getLogger(__name__)


class GeoLookup(Protocol):
    async def lookup(self, ip: str) -> Mapping[str, Any]: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _split_loc(value: Any) -> tuple[float | None, float | None]:
    # Core API: "loc": "37.4056,-122.0775"
    text = as_str(value)
    if text is None or "," not in text:
        return None, None
    lat, _, lon = text.partition(",")
    return as_float(lat), as_float(lon)


def _split_org(value: Any) -> tuple[str | None, str | None]:
    # Core API: "org": "AS15169 Google LLC"
    text = as_str(value)
    if text is None or not text.upper().startswith("AS"):
        return None, None
    asn, _, name = text.partition(" ")
    return as_str(asn), as_str(name)


def to_snapshot(ip: str, raw: Mapping[str, Any], *, resolved_at: datetime | None = None) -> GeoSnapshot:
    """
    Build a snapshot from an arbitrary provider mapping. Unknown, missing or
    malformed fields become None.
    """
    loc_lat, loc_lon = _split_loc(raw.get("loc"))
    org_asn, org_name = _split_org(raw.get("org"))

    latitude = as_float(raw.get("latitude"))
    longitude = as_float(raw.get("longitude"))

    return GeoSnapshot(
        ip=as_str(raw.get("ip")) or ip,
        hostname=as_str(raw.get("hostname")),
        asn=as_str(raw.get("asn")) or org_asn,
        as_name=as_str(raw.get("as_name")) or org_name,
        as_domain=as_str(raw.get("as_domain")),
        country_code=as_str(raw.get("country_code")),
        country=as_str(raw.get("country")),
        continent_code=as_str(raw.get("continent_code")),
        continent=as_str(raw.get("continent")),
        region=as_str(raw.get("region")),
        city=as_str(raw.get("city")),
        postal=as_str(raw.get("postal")),
        timezone=as_str(raw.get("timezone")),
        latitude=latitude if latitude is not None else loc_lat,
        longitude=longitude if longitude is not None else loc_lon,
        source=GEO_SOURCE,
        resolved_at=resolved_at or _utc_now(),
    )


class GeoService:
    def __init__(self, lookup: GeoLookup, *, timeout_s: float = DEFAULT_IPINFO_TIMEOUT_S) -> None:
        self._lookup = lookup
        self._timeout_s = timeout_s

    async def resolve(self, ip: str | None) -> GeoSnapshot | None:
        if not ip:
            return None

        try:
            normalized = ip_utils.normalize(ip)
            if normalized is None or ip_utils.is_private(normalized):
                return None

            raw = await asyncio.wait_for(self._lookup.lookup(ip), timeout=self._timeout_s)
            if not isinstance(raw, Mapping):
                logger.warning("geo_lookup_malformed ip=%s type=%s", ip, type(raw).__name__)
                return None

            return to_snapshot(normalized, raw)
        except Exception as exc:
            logger.warning("geo_lookup_failed ip=%s error=%s", ip, type(exc).__name__)
            return None
