"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sanctions.api.events import router as events_router
from sanctions.api.notifications import router as notifications_router
from sanctions.api.sanctions import router as sanctions_router
from sanctions.config import Settings
from sanctions.core.event_bus import EventBus
from sanctions.core.scheduler_runner import start_sweep_scheduler
from sanctions.core.tally import HttpVoteSource
from sanctions.db.engine import create_engine, create_tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine/tables, event bus, vote source, optional sweep."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.event_bus = EventBus()
    app.state.vote_source = HttpVoteSource(settings.sanctions_platform_api_url)

    scheduler = start_sweep_scheduler(
        engine, settings, app.state.event_bus, app.state.vote_source
    )
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("sweep_stopped")

    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the sanctions FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.sanctions_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Sanctions",
        version="0.1.0",
        description="Community sanction votes held in discussion topics",
        docs_url="/docs" if settings.sanctions_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(events_router)
    app.include_router(notifications_router)
    app.include_router(sanctions_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.sanctions_env}

    return app


app = create_app()
