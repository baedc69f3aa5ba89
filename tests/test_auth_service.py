"""Tests for registration, login and the current-user lookup."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from auth import schemas
from auth.security import PasswordHasher, TokenService
from auth.service import AuthService
from core.errors import AppError

from conftest import JWT_SECRET, FakeUniqueViolation, InMemoryUserStore


@pytest.fixture
def tokens():
    return TokenService(JWT_SECRET)


@pytest.fixture
def users():
    return InMemoryUserStore()


@pytest.fixture
def service(users, tokens):
    return AuthService(users, PasswordHasher(8), tokens)


def _credentials(email="alice@example.com", password="Password123"):
    return schemas.RegisterRequest(email=email, password=password)


@pytest.mark.asyncio
async def test_register_then_login_yield_same_subject(service, tokens):
    register_token = await service.register(_credentials())
    login_token = await service.login(schemas.LoginRequest(email="alice@example.com", password="Password123"))

    assert tokens.verify(register_token).subject == tokens.verify(login_token).subject


@pytest.mark.asyncio
async def test_email_is_normalized(service, users):
    await service.register(_credentials(email="  Alice@Example.COM "))

    stored = list(users.rows.values())
    assert stored[0]["email"] == "alice@example.com"
    assert stored[0]["password_hash"] != "Password123"


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_are_indistinguishable(service):
    await service.register(_credentials())

    with pytest.raises(AppError) as wrong_password:
        await service.login(schemas.LoginRequest(email="alice@example.com", password="WrongPassword1"))
    with pytest.raises(AppError) as unknown_email:
        await service.login(schemas.LoginRequest(email="nobody@example.com", password="Password123"))

    for exc in (wrong_password.value, unknown_email.value):
        assert exc.status_code == 401
        assert exc.code == "INVALID_CREDENTIALS"
    assert wrong_password.value.message == unknown_email.value.message


@pytest.mark.asyncio
async def test_unknown_email_still_runs_password_check(users, tokens):
    hasher = PasswordHasher(8)
    hasher.verify = AsyncMock(wraps=hasher.verify)
    service = AuthService(users, hasher, tokens)

    with pytest.raises(AppError):
        await service.login(schemas.LoginRequest(email="nobody@example.com", password="Password123"))

    hasher.verify.assert_awaited_once()
    password, password_hash = hasher.verify.await_args.args
    assert password == "Password123"
    assert password_hash.startswith("$2b$08$")


@pytest.mark.asyncio
async def test_duplicate_registration(service):
    await service.register(_credentials())

    with pytest.raises(AppError) as exc_info:
        await service.register(_credentials(email="ALICE@example.com"))
    assert exc_info.value.status_code == 409
    assert exc_info.value.code == "EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_unique_violation_from_store_becomes_conflict(users, tokens):
    async def racing_create(*, email, password_hash):
        raise FakeUniqueViolation('duplicate key value violates unique constraint "users_email_key"')

    users.create = racing_create
    service = AuthService(users, PasswordHasher(8), tokens)

    with pytest.raises(AppError) as exc_info:
        await service.register(_credentials())
    assert exc_info.value.status_code == 409
    assert exc_info.value.code == "EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_other_store_errors_propagate(users, tokens):
    async def broken_create(*, email, password_hash):
        raise RuntimeError("connection reset")

    users.create = broken_create
    service = AuthService(users, PasswordHasher(8), tokens)

    with pytest.raises(RuntimeError):
        await service.register(_credentials())


@pytest.mark.asyncio
async def test_me(service, users, tokens):
    token = await service.register(_credentials())
    user = await service.me(tokens.verify(token).subject)

    assert user.email == "alice@example.com"
    assert user.created_at is not None


@pytest.mark.asyncio
async def test_me_for_unknown_user(service):
    with pytest.raises(AppError) as exc_info:
        await service.me("missing")
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize(
    "email, password",
    [
        ("not-an-email", "Password123"),
        ("a@b", "Password123"),
        ("alice@example.com", "short"),
        ("alice@example.com", "         "),
        ("alice@example.com", "x" * 73),
        ("alice@example.com", "é" * 40),
    ],
)
def test_credential_validation(email, password):
    with pytest.raises(ValidationError):
        schemas.RegisterRequest(email=email, password=password)
