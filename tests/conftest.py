"""Shared test fixtures: in-memory stores, a scripted geo lookup and app wiring."""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app

JWT_SECRET = "tests-jwt-secret-with-enough-length-0123456789"

IPINFO_LITE_8888 = {
    "ip": "8.8.8.8",
    "asn": "AS15169",
    "as_name": "Google LLC",
    "as_domain": "google.com",
    "country_code": "US",
    "country": "United States",
    "continent_code": "NA",
    "continent": "North America",
}


class FakeUniqueViolation(Exception):
    """Stands in for asyncpg.UniqueViolationError (same SQLSTATE attribute)."""

    sqlstate = "23505"


class InMemoryUserStore:
    def __init__(self):
        self.rows = {}

    async def get_by_email(self, email):
        for row in self.rows.values():
            if row["email"] == email:
                return dict(row)
        return None

    async def get_by_id(self, user_id):
        row = self.rows.get(user_id)
        return dict(row) if row is not None else None

    async def create(self, *, email, password_hash):
        if any(row["email"] == email for row in self.rows.values()):
            raise FakeUniqueViolation('duplicate key value violates unique constraint "users_email_key"')
        row = {
            "id": str(uuid4()),
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        self.rows[row["id"]] = row
        return {"id": row["id"], "email": row["email"], "created_at": row["created_at"]}


class InMemoryHistoryStore:
    def __init__(self, *, fail_on_create=False):
        self.rows = []
        self.fail_on_create = fail_on_create
        self.create_calls = 0
        self.delete_calls = 0
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def create(self, *, user_id, ip, geo):
        self.create_calls += 1
        if self.fail_on_create:
            raise RuntimeError("database is down")
        # Strictly increasing timestamps keep ordering deterministic.
        self._clock += timedelta(seconds=1)
        row = {
            "id": str(uuid4()),
            "user_id": user_id,
            "ip": ip,
            "geo": geo,
            "created_at": self._clock,
        }
        self.rows.append(row)
        return dict(row)

    async def list_by_user(self, user_id, *, limit):
        owned = [row for row in self.rows if row["user_id"] == user_id]
        owned.sort(key=lambda row: row["created_at"], reverse=True)
        return [dict(row) for row in owned[:limit]]

    async def delete_many(self, user_id, ids):
        self.delete_calls += 1
        wanted = set(ids)
        kept = [row for row in self.rows if not (row["user_id"] == user_id and row["id"] in wanted)]
        deleted = len(self.rows) - len(kept)
        self.rows = kept
        return deleted


class FakeGeoLookup:
    """Scripted provider: returns `payload`, raises `error`, or stalls for `delay` seconds."""

    def __init__(self, payload=None, *, error=None, delay=0.0):
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls = []

    async def lookup(self, ip):
        self.calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.payload is None:
            return {"ip": ip}
        return self.payload


def make_settings(**overrides):
    values = {
        "jwt_secret": JWT_SECRET,
        "bcrypt_cost": 8,
        "ipinfo_token": "test-token",
        "ipinfo_timeout_s": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def geo_lookup():
    return FakeGeoLookup(IPINFO_LITE_8888)


@pytest.fixture
def app(settings, user_store, history_store, geo_lookup):
    return create_app(
        settings,
        user_store=user_store,
        history_store=history_store,
        geo_lookup=geo_lookup,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register(client, email="alice@example.com", password="Password123"):
    response = client.post("/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()["token"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
