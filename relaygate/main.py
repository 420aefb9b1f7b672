"""Relaygate FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relaygate import __version__
from relaygate.api.middleware import RequestLoggingMiddleware
from relaygate.api.routes import gateway, health
from relaygate.config.settings import Settings, settings as default_settings
from relaygate.sessions.errors import GatewayError
from relaygate.sessions.manager import SessionLifecycleManager
from relaygate.store.base import StatusStoreError

logger = logging.getLogger("relaygate.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager: SessionLifecycleManager = app.state.sessions
    await manager.store.ping()
    logger.info("Relaygate %s started with %s status store", __version__, manager.store.name)
    yield
    await manager.shutdown()
    await manager.store.close()


def create_app(
    settings: Settings | None = None,
    manager: SessionLifecycleManager | None = None,
) -> FastAPI:
    """Build the application around a session lifecycle manager."""
    settings = settings or default_settings

    app = FastAPI(
        title="Relaygate",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = manager or SessionLifecycleManager.from_settings(settings)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(gateway.router)

    # --- Exception handlers ---

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        if errors:
            loc = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"{loc}: {errors[0].get('msg')}" if loc else str(errors[0].get("msg"))
        else:
            message = "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StatusStoreError)
    async def store_error_handler(request: Request, exc: StatusStoreError) -> JSONResponse:
        logger.error("%s %s status store failure: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})

    return app


app = create_app()
