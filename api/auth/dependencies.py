"""
Auth dependencies for protected FastAPI routes.

`get_current_user` is the single authorization checkpoint: routes that need
an identity declare it and receive a `CurrentUser`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, Request

from core.errors import unauthorized

from .security import TokenError, TokenService
from .service import AuthService

BEARER_SCHEME = "Bearer"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _extract_bearer_token(authorization: str | None) -> str:
    parts = (authorization or "").split()
    if len(parts) != 2:
        raise unauthorized()

    scheme, token = parts
    if scheme != BEARER_SCHEME or not token:
        raise unauthorized()
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_user(
    request: Request,
    access_token: str = Depends(get_bearer_token),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentUser:
    if not tokens.is_configured:
        # Server-side misconfiguration; the client only sees 401.
        logger.error("jwt_secret_missing path=%s", request.url.path)
        raise unauthorized()

    try:
        claims = tokens.verify(access_token)
    except TokenError as exc:
        raise unauthorized() from exc

    user = CurrentUser(id=claims.subject, email=claims.email)
    # Read by the error handlers for log context only.
    request.state.user = user
    return user
