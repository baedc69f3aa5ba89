"""
Search-history API schemas.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from geo.schemas import GeoSnapshot


class SearchRequest(BaseModel):
    ip: str


class DeleteRequest(BaseModel):
    ids: list[str]


class HistoryItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    ip: str
    geo: GeoSnapshot | None = None
    created_at: datetime = Field(alias="createdAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
