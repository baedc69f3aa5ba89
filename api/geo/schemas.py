"""
Geo API schemas.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

GEO_SOURCE = "ipinfo"


class GeoSnapshot(BaseModel):
    """
    Normalized result of resolving one IP. Every descriptive field is
    independently nullable; the shape is the same whatever the provider
    payload looked like.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ip: str
    hostname: str | None = None

    asn: str | None = None
    as_name: str | None = None
    as_domain: str | None = None

    country_code: str | None = None
    country: str | None = None
    continent_code: str | None = None
    continent: str | None = None
    region: str | None = None
    city: str | None = None
    postal: str | None = None
    timezone: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    source: str = GEO_SOURCE
    resolved_at: datetime = Field(alias="resolvedAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
