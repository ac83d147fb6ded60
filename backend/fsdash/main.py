"""FS DASH backend - FastAPI application."""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import create_api_router
from .config import Settings
from .errors import ConfigError
from .market.fallback import FallbackUpstreamClient
from .realtime.stream import create_stream_router
from .services import Services

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None, upstream: FallbackUpstreamClient | None = None) -> FastAPI:
    """Build the application and all of its stores.

    Every call returns an independent app: nothing is shared through module
    globals, so tests can build as many as they like.
    """
    settings = settings or Settings.from_env()
    services = Services.build(settings, upstream=upstream)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting FS DASH backend (%d symbols)", len(settings.symbols))
        await services.login_feed()
        await services.scheduler.start()
        yield
        logger.info("Shutting down FS DASH backend...")
        await services.shutdown()

    app = FastAPI(title="FS DASH", description="Broker relay with real-time fan-out", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(services))
    app.include_router(create_stream_router(services.gateway))
    return app


def main() -> None:
    """Console entrypoint: load settings, configure logging, serve."""
    import uvicorn

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging()
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info("Listening on %s:%d (WebSocket at /ws, REST at /api)", settings.host, settings.port)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
