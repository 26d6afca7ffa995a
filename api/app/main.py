# api/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.app.config import get_settings
from api.app.routes import buddies, health, messages
from db.engine import get_engine
from services.buddy_server import BuddyServer
from services.errors import BuddyNotFound, StorageError, ValidationError

logger = logging.getLogger(__name__)


def create_app(server: BuddyServer | None = None) -> FastAPI:
    """Build the API. When `server` is omitted one is created from settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.server = server or BuddyServer.from_settings(settings, get_engine())
        state = await app.state.server.start()
        logger.info("Buddy server started (providers: %s)", state.status.value)
        yield
        await app.state.server.shutdown()

    app = FastAPI(
        title="Buddy Companion API",
        description="Per-buddy conversation memory and multi-backend reply generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BuddyNotFound)
    async def buddy_not_found_handler(request: Request, exc: BuddyNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})

    app.include_router(health.router)
    app.include_router(health.providers_router, prefix="/v1")
    app.include_router(buddies.router, prefix="/v1")
    app.include_router(messages.router, prefix="/v1")

    return app
