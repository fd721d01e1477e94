"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import MongoClient
from starlette.concurrency import run_in_threadpool

from config import AppSettings
from errors import register_error_handlers
from infrastructure.storage.local import LocalImageStorage
from middleware.request_logging import setup_request_logging
from repositories.api_key_repository import ApiKeyRepository
from repositories.image_repository import ImageRepository
from routes.health_routes import router as health_router
from routes.image_routes import router as image_router
from services.image_service import ImageService
from services.key_authority import KeyAuthority
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    mongo_client: Optional[MongoClient] = None,
) -> FastAPI:
    """Create and return a fully configured FastAPI application.

    *mongo_client* lets callers (tests, embedding apps) supply an existing
    client; the app then leaves closing it to them.
    """
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        owns_client = mongo_client is None
        client = mongo_client or MongoClient(settings.db.mongodb_uri, tz_aware=True)
        db = client[settings.db.db_name]

        storage = LocalImageStorage(settings.storage.image_dir)
        storage.ensure_root()

        api_keys = ApiKeyRepository(db)
        images = ImageRepository(db)
        await run_in_threadpool(api_keys.ensure_indexes)
        await run_in_threadpool(images.ensure_indexes)

        app.state.settings = settings
        app.state.mongo_client = client
        app.state.db = db
        app.state.storage = storage
        app.state.key_authority = KeyAuthority(api_keys)
        app.state.image_service = ImageService(
            images,
            storage,
            max_upload_bytes=settings.storage.storage_max_upload_bytes,
        )

        log.info(
            "app_started",
            db_name=settings.db.db_name,
            storage_root=str(storage.root),
            public_file_access=settings.storage.storage_public_file_access,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if owns_client:
            client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_request_logging(app)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(image_router)

    return app
