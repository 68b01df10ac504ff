"""Factory for constructing the HTTP API application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..logging import configure_logging
from .dependencies import build_container, set_container
from .errors import register_exception_handlers
from .routers import batches, flashcards

logger = logging.getLogger(__name__)


def create_api() -> FastAPI:
    """Produce the FastAPI application instance to be mounted by an ASGI server."""
    container = build_container()
    set_container(container)

    configure_logging(
        level=container.config.log_level,
        loki_url=container.config.loki_url,
        loki_labels=container.config.loki_labels,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await container.database.initialize()
        logger.info(
            "API started: environment=%s, generator=%s",
            container.config.environment,
            container.config.generator_backend,
        )
        try:
            yield
        finally:
            await container.database.dispose()

    app = FastAPI(
        title="Cardforge API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple readiness probe."""
        return {"status": "ok"}

    app.include_router(batches.router, prefix="/api")
    app.include_router(flashcards.router, prefix="/api")
    return app
