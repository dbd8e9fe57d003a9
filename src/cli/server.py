from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.body_limit import BodyLimitMiddleware
from src.api.error_handlers import install_error_handlers
from src.api.routes_files import router as files_router
from src.api.routes_health import router as health_router
from src.api.routes_text import router as text_router
from src.config.loader import load_config
from src.config.schema import AppConfig, ShareSettings
from src.models.errors import PayloadTooLargeError, TextTooLargeError
from src.share.share_handler import ShareService

logger = logging.getLogger(__name__)

# room for multipart boundaries and headers around the file part
MULTIPART_OVERHEAD = 64 * 1024
# JSON may escape one byte of text into up to six
JSON_ESCAPE_FACTOR = 6


def _body_limits(settings: ShareSettings) -> dict:
    return {
        "/api/share/file": (settings.max_upload_bytes + MULTIPART_OVERHEAD, PayloadTooLargeError),
        "/api/share/text": (
            settings.max_text_bytes * JSON_ESCAPE_FACTOR + 1024,
            TextTooLargeError,
        ),
    }


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    service: ShareService = app.state.share_service
    await service.start()
    try:
        yield
    finally:
        await service.stop()


def create_app(config: AppConfig | None = None, service: ShareService | None = None) -> FastAPI:
    config = config or load_config()
    app = FastAPI(
        title="Quick Share",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )
    service = service or ShareService.from_settings(config.share)
    app.state.share_service = service
    app.add_middleware(BodyLimitMiddleware, limits=_body_limits(service.settings))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(text_router)
    app.include_router(files_router)
    app.include_router(health_router)
    return app


app = create_app()
