from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from articles import router as articles_router
from core.config import Settings
from core.db import Database
from core.errors import register_exception_handlers
from core.logging import add_request_logging, configure_logging
from hello import router as hello_router
from users import router as users_router


def create_app(settings: Settings, *, database: Database | None = None) -> FastAPI:
    """
    Build the application around explicit settings and database.

    Passing `database` lets callers (tests) supply one whose lifecycle they
    own; otherwise a pool-backed `Database` is opened and closed with the app.
    """
    configure_logging(settings)

    owns_database = database is None
    if database is None:
        database = Database(
            settings.current_database_url,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
            command_timeout=settings.DB_COMMAND_TIMEOUT,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if owns_database:
            await database.connect()
        try:
            yield
        finally:
            if owns_database:
                await database.close()

    app = FastAPI(title="conduit-api", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    # Allow the frontend dev server to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    add_request_logging(app)
    register_exception_handlers(app)

    app.include_router(hello_router.router, tags=["hello"])
    app.include_router(users_router.router, tags=["users"])
    app.include_router(articles_router.router, tags=["articles"])

    return app
