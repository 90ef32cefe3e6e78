"""Shared test fixtures."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from sanctions.config import Settings
from sanctions.core.event_bus import EventBus
from sanctions.core.identifier import Identifier
from sanctions.core.lifecycle import LifecycleContext
from sanctions.db.engine import create_engine, create_tables, get_session
from sanctions.db.repository import Repository
from sanctions.models.actor import Actor
from sanctions.models.sanction import ThreadPost

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
BOT_NAME = "Sanction bot"


def make_actor(name: str, **overrides: object) -> Actor:
    """A registered user old and active enough to hold vote-right."""
    data: dict[str, object] = {
        "name": name,
        "edit_count": 50,
        "registered_at": NOW - timedelta(days=365),
    }
    data.update(overrides)
    return Actor(**data)


class StaticVoteSource:
    """In-memory stand-in for the discussion platform's topic API."""

    def __init__(self) -> None:
        self.posts: dict[str, list[ThreadPost]] = defaultdict(list)
        self.calls = 0

    def add(self, identifier: str, author: Actor, content: str, posted_at: datetime) -> None:
        post_id = f"p-{len(self.posts[identifier]) + 1}"
        self.posts[identifier].append(
            ThreadPost(id=post_id, author=author, content=content, posted_at=posted_at)
        )

    async def fetch_posts(self, identifier: str) -> list[ThreadPost]:
        self.calls += 1
        return list(self.posts.get(identifier, []))


class RecordingEnactment:
    def __init__(self) -> None:
        self.enacted: list[str] = []

    async def enact(self, sanction) -> None:
        self.enacted.append(sanction.id)


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(
        sanctions_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
        session_secret_key="test-secret-key-for-testing",
    )


@pytest.fixture
async def engine() -> AsyncEngine:
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    async with get_session(engine) as session:
        yield Repository(session)


@pytest.fixture
def vote_source() -> StaticVoteSource:
    return StaticVoteSource()


@pytest.fixture
def enactment() -> RecordingEnactment:
    return RecordingEnactment()


@pytest.fixture
def ctx(
    repo: Repository,
    vote_source: StaticVoteSource,
    enactment: RecordingEnactment,
    settings: Settings,
) -> LifecycleContext:
    return LifecycleContext(
        repo=repo,
        source=vote_source,
        enactment=enactment,
        bus=EventBus(),
        settings=settings,
        now=NOW,
    )


@pytest.fixture
def topic() -> Identifier:
    return Identifier.from_text("tv8qc8wtxoz7yczd")
