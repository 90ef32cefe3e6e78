"""FastAPI dependency injection for sessions, repository and lifecycle context."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from sanctions.config import Settings
from sanctions.core.enactment import build_enactment_trigger
from sanctions.core.lifecycle import LifecycleContext
from sanctions.db.engine import create_session_factory
from sanctions.db.repository import Repository


async def get_engine(request: Request) -> AsyncEngine:
    """Get the database engine from app state."""
    return request.app.state.engine


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(
    engine: Annotated[AsyncEngine, Depends(get_engine)],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session."""
    factory = create_session_factory(engine)
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:  # rollback, then re-raise
            await session.rollback()
            raise


async def get_repo(session: Annotated[AsyncSession, Depends(get_session)]) -> Repository:
    """Get a repository instance bound to the current session."""
    return Repository(session)


RepoDep = Annotated[Repository, Depends(get_repo)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_lifecycle(request: Request, repo: RepoDep) -> LifecycleContext:
    """A fresh lifecycle context per request; the clock is read once here."""
    state = request.app.state
    return LifecycleContext(
        repo=repo,
        source=state.vote_source,
        enactment=build_enactment_trigger(state.settings, state.event_bus),
        bus=state.event_bus,
        settings=state.settings,
    )


LifecycleDep = Annotated[LifecycleContext, Depends(get_lifecycle)]
