"""
Lifecycle API

FastAPI application exposing one endpoint per entity transition.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifecycle_api.errors import install_error_handlers
from lifecycle_api.routes import health, transitions
from lifecycle_config import EngineConfig, get_active_config
from lifecycle_kernel import __version__
from lifecycle_kernel.db.engine import get_session_factory, init_engine_from_url
from lifecycle_kernel.logging_config import configure_logging, get_logger
from lifecycle_modules._orm_registry import create_all_tables
from lifecycle_modules.catalog import LifecycleEngine, build_engine

logger = get_logger("api")


def engine_from_config(config: EngineConfig) -> LifecycleEngine:
    """Initialize the database and wire an engine from ``config``."""
    init_engine_from_url(config.database_url, echo=config.echo_sql)
    create_all_tables()
    return build_engine(get_session_factory(), config)


def create_app(
    lifecycle_engine: LifecycleEngine | None = None,
    config: EngineConfig | None = None,
) -> FastAPI:
    """
    Build the application.

    Pass ``lifecycle_engine`` to serve an already-wired engine (tests);
    otherwise one is built from ``config`` or the active configuration.
    """
    if lifecycle_engine is None:
        config = config or get_active_config()
        configure_logging(level=config.log_level)
        lifecycle_engine = engine_from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "api_started",
            extra={"kinds": list(lifecycle_engine.registry.kinds())},
        )
        yield
        logger.info("api_stopping")
        lifecycle_engine.shutdown(wait=True)

    app = FastAPI(
        title="Lifecycle Engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.lifecycle_engine = lifecycle_engine
    install_error_handlers(app)
    app.include_router(health.router)
    app.include_router(transitions.router)
    return app
