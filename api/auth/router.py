"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from . import schemas
from .dependencies import CurrentUser, get_auth_service, get_current_user
from .service import AuthService

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.TokenResponse)
async def register(
    payload: schemas.RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> schemas.TokenResponse:
    token = await service.register(payload)
    return schemas.TokenResponse(token=token)


@router.post("/login", response_model=schemas.TokenResponse)
async def login(
    payload: schemas.LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> schemas.TokenResponse:
    token = await service.login(payload)
    return schemas.TokenResponse(token=token)


@router.get("/me", response_model=schemas.MeResponse, response_model_exclude_none=True)
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> schemas.MeResponse:
    user = await service.me(current_user.id)
    return schemas.MeResponse(user=user)
