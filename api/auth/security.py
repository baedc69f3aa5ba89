"""
Auth security helpers: bcrypt password hashing and JWT bearer tokens.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import bcrypt
import jwt
from fastapi import status
from starlette.concurrency import run_in_threadpool

from core.config import (
    DEFAULT_JWT_ALG,
    DEFAULT_JWT_EXPIRES_IN_S,
    Settings,
    bcrypt_cost_or_default,
)
from core.errors import AppError


class AuthSecurityError(RuntimeError):
    pass


class TokenError(AuthSecurityError):
    """
    Any token verification failure. The reason is deliberately not exposed.
    """


def now_epoch_s() -> int:
    return int(time.time())


class PasswordHasher:
    """
    Salted bcrypt hashing. Work happens in the threadpool so request
    coroutines are not blocked.
    """

    def __init__(self, cost: int | None = None) -> None:
        self.cost = bcrypt_cost_or_default(cost)
        self._dummy_hash: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> PasswordHasher:
        return cls(settings.bcrypt_cost)

    def hash_sync(self, plain_password: str) -> str:
        # Exact input bytes; the password is never trimmed.
        password = (plain_password or "").encode("utf-8")
        if not password:
            raise AuthSecurityError("Password is empty.")
        return bcrypt.hashpw(password, bcrypt.gensalt(rounds=self.cost)).decode("utf-8")

    def verify_sync(self, plain_password: str, password_hash: str) -> bool:
        password = (plain_password or "").encode("utf-8")
        hashed = (password_hash or "").encode("utf-8")
        if not password or not hashed:
            return False
        try:
            return bcrypt.checkpw(password, hashed)
        except ValueError:
            return False

    async def hash(self, plain_password: str) -> str:
        return await run_in_threadpool(self.hash_sync, plain_password)

    async def verify(self, plain_password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.verify_sync, plain_password, password_hash)

    async def dummy_hash(self) -> str:
        """
        A throwaway hash at this hasher's cost. Verifying against it costs the
        same as verifying a real password.
        """
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash("not-a-real-password")
        return self._dummy_hash


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str | None = None
    issued_at: int | None = None
    expires_at: int | None = None


class TokenService:
    def __init__(
        self,
        secret: str | None,
        *,
        algorithm: str = DEFAULT_JWT_ALG,
        expires_in_s: int = DEFAULT_JWT_EXPIRES_IN_S,
    ) -> None:
        self._secret = (secret or "").strip() or None
        self.algorithm = algorithm
        self.expires_in_s = expires_in_s

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_in_s=settings.jwt_expires_in_s,
        )

    @property
    def is_configured(self) -> bool:
        return self._secret is not None

    def _require_secret(self) -> str:
        if self._secret is None:
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "JWT secret is not configured",
                "JWT_MISCONFIG",
            )
        return self._secret

    def sign(self, *, subject: str, email: str | None = None) -> str:
        if not isinstance(subject, str) or not subject.strip():
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Invalid JWT claims",
                "JWT_INVALID_CLAIMS",
            )
        secret = self._require_secret()

        issued_at = now_epoch_s()
        payload: dict[str, object] = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.expires_in_s,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        raw = (token or "").strip()
        if not raw or self._secret is None:
            raise TokenError("Unauthorized")

        try:
            payload = jwt.decode(
                raw,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            raise TokenError("Unauthorized") from exc

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise TokenError("Unauthorized")

        email = payload.get("email")
        return TokenClaims(
            subject=subject,
            email=email if isinstance(email, str) and email else None,
            issued_at=payload.get("iat") if isinstance(payload.get("iat"), int) else None,
            expires_at=payload.get("exp") if isinstance(payload.get("exp"), int) else None,
        )
