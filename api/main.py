from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from auth.repository import UserRepository, UserStore
from auth.security import PasswordHasher, TokenService
from auth.service import AuthService
from core import db
from core.config import Settings
from core.errors import install_error_handlers
from core.ipinfo import IpinfoClient
from core.log import configure_logging
from geo import router as geo_router
from geo.service import GeoLookup, GeoService
from history import router as history_router
from history.repository import HistoryRepository, HistoryStore
from history.service import HistoryService


def create_app(
    settings: Settings | None = None,
    *,
    user_store: UserStore | None = None,
    history_store: HistoryStore | None = None,
    geo_lookup: GeoLookup | None = None,
) -> FastAPI:
    """
    Build the API. Stores and the geo lookup client default to the Postgres
    repositories and IPinfo; tests pass their own.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    uses_database = user_store is None or history_store is None

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # Initialize the DB pool once per process.
        if uses_database:
            await db.init_pool(settings.database_url)
        try:
            yield
        finally:
            if uses_database:
                await db.close_pool()

    app = FastAPI(lifespan=lifespan)

    tokens = TokenService.from_settings(settings)
    geo_service = GeoService(
        geo_lookup or IpinfoClient.from_settings(settings),
        timeout_s=settings.ipinfo_timeout_s,
    )
    app.state.settings = settings
    app.state.token_service = tokens
    app.state.auth_service = AuthService(
        user_store or UserRepository(),
        PasswordHasher.from_settings(settings),
        tokens,
    )
    app.state.geo_service = geo_service
    app.state.history_service = HistoryService(history_store or HistoryRepository(), geo_service)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    install_error_handlers(app, settings)

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(geo_router.router, tags=["geo"])
    app.include_router(history_router.router, tags=["history"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "ip-geo-history api"}

    return app


app = create_app()
