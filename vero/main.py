"""
Vero — Application Entry Point

FastAPI application exposing the certificate registry.

`uvicorn vero.main:app`
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from vero import __version__
from vero.api.routers.vero import router as vero_router
from vero.config import VeroConfig, load_config
from vero.systems.registry.errors import VeroError
from vero.systems.registry.service import VeroService
from vero.telemetry.logging import setup_logging

# Load .env file before any configuration is loaded
load_dotenv()

logger = structlog.get_logger()


def create_app(config: VeroConfig | None = None) -> FastAPI:
    """Build the application. Without a config, load it from VERO_CONFIG_PATH."""
    cfg = config
    if cfg is None:
        cfg = load_config(os.environ.get("VERO_CONFIG_PATH", "config/default.yaml"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.config = cfg

        # ── 1. Registry service ───────────────────────────────────
        service = VeroService()
        await service.initialize(cfg.registry, cfg.event_bus)
        app.state.vero = service

        # ── 2. Logging (needs the registry identity) ──────────────
        setup_logging(cfg.logging, registry_address=service.registry.address)
        logger.info(
            "vero_started",
            registry=service.registry.address,
            admin=service.get_vero_admin(),
        )

        yield

        await service.shutdown()
        logger.info("vero_stopped")

    app = FastAPI(
        title="Vero",
        description="Certificate registry with an admin-controlled verification lifecycle",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VeroError)
    async def _vero_error_handler(request: Request, exc: VeroError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.http_status,
            content={"status": "error", "error": {"kind": exc.kind, "message": str(exc)}},
        )

    app.include_router(vero_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """System health check."""
        service: VeroService | None = getattr(app.state, "vero", None)
        if service is None:
            return {"status": "not_initialized"}
        return await service.health()

    return app


app = create_app()
