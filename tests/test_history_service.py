"""Tests for HistoryService: best-effort recording, listing limits and scoped deletes."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from geo.schemas import GeoSnapshot
from history.service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, HistoryService, clamp_limit

from conftest import InMemoryHistoryStore

USER_ID = "user_alice"
OTHER_USER_ID = "user_bob"

SNAPSHOT = GeoSnapshot(
    ip="8.8.8.8",
    asn="AS15169",
    country_code="US",
    resolved_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


def _geo(result=SNAPSHOT):
    geo = AsyncMock()
    geo.resolve = AsyncMock(return_value=result)
    return geo


class TestSearchAndRecord:
    @pytest.mark.asyncio
    async def test_records_and_returns_geo(self):
        store = InMemoryHistoryStore()
        service = HistoryService(store, _geo())

        geo = await service.search_and_record(USER_ID, "8.8.8.8")

        assert geo == SNAPSHOT
        assert len(store.rows) == 1
        row = store.rows[0]
        assert row["user_id"] == USER_ID
        assert row["ip"] == "8.8.8.8"
        assert row["geo"]["asn"] == "AS15169"
        assert row["geo"]["resolvedAt"].startswith("2026-01-01T00:00:00")

    @pytest.mark.asyncio
    async def test_store_failure_does_not_change_result(self, caplog):
        ok_store = InMemoryHistoryStore()
        failing_store = InMemoryHistoryStore(fail_on_create=True)

        ok_geo = await HistoryService(ok_store, _geo()).search_and_record(USER_ID, "8.8.8.8")
        failed_geo = await HistoryService(failing_store, _geo()).search_and_record(USER_ID, "8.8.8.8")

        assert failing_store.create_calls == 1
        assert failing_store.rows == []
        assert failed_geo == ok_geo
        assert "history_record_failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unresolved_geo_is_still_recorded(self):
        store = InMemoryHistoryStore()
        geo = await HistoryService(store, _geo(None)).search_and_record(USER_ID, "10.0.0.1")

        assert geo is None
        assert store.rows[0]["geo"] is None

    @pytest.mark.asyncio
    async def test_resolution_precedes_persistence(self):
        order = []
        geo = AsyncMock()

        async def resolve(ip):
            order.append("resolve")
            return SNAPSHOT

        geo.resolve = resolve
        store = AsyncMock()

        async def create(**kwargs):
            order.append("create")
            return {}

        store.create = create
        await HistoryService(store, geo).search_and_record(USER_ID, "8.8.8.8")

        assert order == ["resolve", "create"]


class TestListByUser:
    @pytest.mark.parametrize(
        "limit, expected",
        [(None, DEFAULT_PAGE_SIZE), (0, DEFAULT_PAGE_SIZE), (-3, DEFAULT_PAGE_SIZE), (1, 1), (75, 75), (100, 100), (1000, MAX_PAGE_SIZE)],
    )
    def test_clamp_limit(self, limit, expected):
        assert clamp_limit(limit) == expected

    @pytest.mark.asyncio
    async def test_limits_are_applied(self):
        store = InMemoryHistoryStore()
        service = HistoryService(store, _geo())
        for _ in range(150):
            await store.create(user_id=USER_ID, ip="8.8.8.8", geo=None)

        assert len(await service.list_by_user(USER_ID, limit=1000)) == 100
        assert len(await service.list_by_user(USER_ID, limit=0)) == DEFAULT_PAGE_SIZE
        assert len(await service.list_by_user(USER_ID)) == DEFAULT_PAGE_SIZE
        assert len(await service.list_by_user(USER_ID, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_most_recent_first_and_owned_only(self):
        store = InMemoryHistoryStore()
        service = HistoryService(store, _geo())
        await store.create(user_id=USER_ID, ip="1.1.1.1", geo=None)
        await store.create(user_id=OTHER_USER_ID, ip="9.9.9.9", geo=None)
        await store.create(user_id=USER_ID, ip="8.8.8.8", geo=SNAPSHOT.to_json())

        items = await service.list_by_user(USER_ID)

        assert [item.ip for item in items] == ["8.8.8.8", "1.1.1.1"]
        assert items[0].geo == SNAPSHOT
        assert items[1].geo is None
        assert items[0].created_at > items[1].created_at

    @pytest.mark.asyncio
    async def test_unreadable_stored_geo_is_dropped(self):
        store = InMemoryHistoryStore()
        await store.create(user_id=USER_ID, ip="8.8.8.8", geo={"unexpected": True})

        items = await HistoryService(store, _geo()).list_by_user(USER_ID)

        assert items[0].geo is None


class TestDeleteMany:
    @pytest.mark.asyncio
    async def test_empty_ids_skip_the_store(self):
        store = AsyncMock()
        service = HistoryService(store, _geo())

        assert await service.delete_many(USER_ID, []) == 0
        store.delete_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_deletes_owned_rows(self):
        store = InMemoryHistoryStore()
        service = HistoryService(store, _geo())
        row = await store.create(user_id=USER_ID, ip="8.8.8.8", geo=None)
        await store.create(user_id=USER_ID, ip="1.1.1.1", geo=None)

        assert await service.delete_many(USER_ID, [row["id"], row["id"]]) == 1
        assert [r["ip"] for r in store.rows] == ["1.1.1.1"]

    @pytest.mark.asyncio
    async def test_other_users_rows_match_nothing(self):
        store = InMemoryHistoryStore()
        service = HistoryService(store, _geo())
        row = await store.create(user_id=OTHER_USER_ID, ip="8.8.8.8", geo=None)

        assert await service.delete_many(USER_ID, [row["id"]]) == 0
        assert len(store.rows) == 1
