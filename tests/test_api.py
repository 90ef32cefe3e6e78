"""End-to-end tests for the HTTP API, run against the ASGI app in-process."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from conftest import BOT_NAME, StaticVoteSource, make_actor
from httpx import ASGITransport, AsyncClient

from sanctions.auth.deps import SESSION_COOKIE_NAME, sign_actor
from sanctions.config import Settings
from sanctions.core.event_bus import EventBus
from sanctions.core.identifier import Identifier
from sanctions.core.topics import open_sanction
from sanctions.db.engine import create_engine, create_tables, get_session
from sanctions.db.repository import Repository
from sanctions.main import create_app
from sanctions.models.actor import Actor
from sanctions.models.sanction import Tally

TOPIC = "tv8qc8wtxoz7yczd"


@pytest.fixture
async def app_client(
    settings: Settings,
    vote_source: StaticVoteSource,
) -> AsyncGenerator[tuple[AsyncClient, object], None]:
    """Test app with engine, event bus and an in-memory vote source attached."""
    app = create_app(settings)

    # Manually run lifespan startup
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.event_bus = EventBus()
    app.state.vote_source = vote_source

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, app

    await engine.dispose()


def _login(client: AsyncClient, actor: Actor, settings: Settings) -> None:
    client.cookies.set(SESSION_COOKIE_NAME, sign_actor(actor, settings))


async def _create(client: AsyncClient, topic: str = TOPIC, **overrides: str):
    body = {"topic": topic, "subject": "Mallory", "sanction_type": "block"}
    body.update(overrides)
    return await client.post("/api/sanctions", json=body)


class TestCreateSanction:
    async def test_requires_login(self, app_client):
        client, _ = app_client
        resp = await _create(client)
        assert resp.status_code == 403

    async def test_requires_vote_right(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Newbie", edit_count=1), settings)
        resp = await _create(client)
        assert resp.status_code == 403

    async def test_create(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        resp = await _create(client, topic=TOPIC.upper())
        assert resp.status_code == 201

        data = resp.json()["data"]
        assert data["identifier"] == TOPIC
        assert data["author"] == "Alice"
        assert data["status"] == "open"
        assert data["is_expired"] is False
        assert data["seconds_remaining"] > 4 * 24 * 3600

    async def test_duplicate_topic_conflicts(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        assert (await _create(client)).status_code == 201
        hex_spelling = Identifier.from_text(TOPIC).hex
        resp = await _create(client, topic=hex_spelling)
        assert resp.status_code == 409

    async def test_concurrent_duplicate_conflicts(self, app_client, settings, monkeypatch):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        assert (await _create(client)).status_code == 201

        async def not_found(self, identifier):
            return None

        # Both requests pass the duplicate check; the unique index decides
        monkeypatch.setattr(Repository, "get_sanction_by_identifier", not_found)
        resp = await _create(client)
        assert resp.status_code == 409

    async def test_invalid_topic(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        resp = await _create(client, topic="not a topic")
        assert resp.status_code == 422

    async def test_invalid_type(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        resp = await _create(client, sanction_type="ban-forever")
        assert resp.status_code == 422

    async def test_tampered_cookie_is_anonymous(self, app_client):
        client, _ = app_client
        client.cookies.set(SESSION_COOKIE_NAME, "not-a-signed-value")
        resp = await _create(client)
        assert resp.status_code == 403


class TestLookup:
    async def test_unknown_topic_404(self, app_client):
        client, _ = app_client
        assert (await client.get("/api/sanctions/abc123")).status_code == 404

    async def test_malformed_identifier_422(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/not-valid!")
        assert resp.status_code == 422
        assert "not-valid!" in resp.json()["detail"]

    async def test_lookup_does_not_refresh(self, app_client, settings, vote_source):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        await _create(client)

        resp = await client.get(f"/api/sanctions/{TOPIC}")
        assert resp.status_code == 200
        assert resp.json()["data"]["subject"] == "Mallory"
        assert vote_source.calls == 0

    async def test_sanctions_for_subject(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        await _create(client)
        await _create(client, topic="abc1", sanction_type="insulting-name")

        resp = await client.get("/api/sanctions/subjects/Mallory")
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 2

        resp = await client.get("/api/sanctions/subjects/Nobody")
        assert resp.json()["data"] == []

    async def test_open_listing_excludes_overdue(self, app_client, settings):
        client, app = app_client
        _login(client, make_actor("Alice"), settings)
        await _create(client)
        async with get_session(app.state.engine) as session:
            await open_sanction(
                Repository(session),
                Identifier.from_text("abc1"),
                "Mallory",
                "block",
                "Alice",
                settings,
                datetime.now(UTC) - timedelta(days=10),
            )

        resp = await client.get("/api/sanctions")
        assert resp.status_code == 200
        assert [s["identifier"] for s in resp.json()["data"]] == [TOPIC]


class TestPageViews:
    async def test_board_redirects(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/pages/Project_talk:Sanctions")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/sanctions"

    async def test_board_without_redirect(self, app_client):
        client, _ = app_client
        resp = await client.get(
            "/api/sanctions/pages/Project_talk:Sanctions", params={"redirect": "no"}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["kind"] == "board"

    async def test_ordinary_page(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/pages/Topic:abc123")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["kind"] == "other"
        assert data["sanction"] is None

    async def test_open_topic_refreshes(self, app_client, settings, vote_source):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        await _create(client)
        vote_source.add(TOPIC, make_actor("Bob"), "{{Agree|3}}", datetime.now(UTC))

        resp = await client.get(f"/api/sanctions/pages/Topic:{TOPIC}")
        data = resp.json()["data"]
        assert data["kind"] == "topic"
        assert data["refreshed"] is True
        assert data["show_vote_ui"] is True
        assert data["sanction"]["tally"]["agree"] == 1
        assert data["sanction"]["tally"]["block_days"] == 3
        assert vote_source.calls == 1

    async def test_expired_topic_stays_pending_without_worker(self, app_client, vote_source):
        client, app = app_client
        async with get_session(app.state.engine) as session:
            repo = Repository(session)
            sanction = await open_sanction(
                repo,
                Identifier.from_text(TOPIC),
                "Mallory",
                "block",
                "Alice",
                app.state.settings,
                datetime.now(UTC) - timedelta(days=10),
            )
            await repo.write_tally(sanction.id, Tally(agree=3, block_days=5))

        resp = await client.get(f"/api/sanctions/pages/Topic:{TOPIC}")
        data = resp.json()["data"]
        assert data["refreshed"] is False
        assert data["show_vote_ui"] is False
        assert data["sanction"]["status"] == "passed"
        assert data["sanction"]["enacted"] is False
        assert data["sanction"]["seconds_remaining"] == 0
        assert vote_source.calls == 0


class TestClientSurface:
    async def test_config(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/config")
        assert resp.json()["data"]["agree_template"] == "Agree"
        assert resp.json()["data"]["max_block_period"] == 30

    async def test_links_anonymous(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/links", params={"user": "Mallory", "rev": 5})
        ids = [link["id"] for link in resp.json()["data"]]
        assert ids == ["t-sanctions", "sanctions"]

    async def test_links_with_vote_right(self, app_client, settings):
        client, _ = app_client
        _login(client, make_actor("Alice"), settings)
        resp = await client.get(
            "/api/sanctions/links",
            params={"user": "Mallory", "new_rev": 20, "old_rev": 10, "rev": 5},
        )
        ids = [link["id"] for link in resp.json()["data"]]
        assert ids == [
            "sanctions-user-tool",
            "t-sanctions",
            "sanctions",
            "sanctions-diff",
            "sanctions-history",
        ]


class TestNotificationHooks:
    async def test_bot_email_suppressed_and_watchers_marked(self, app_client):
        client, _ = app_client
        for user in ("Alice", "Bob"):
            resp = await client.post(
                "/api/watchlist", json={"user_name": user, "title": "Project_talk:Sanctions"}
            )
            assert resp.status_code == 201

        resp = await client.post(
            "/api/sanctions/notifications/email",
            json={
                "editor": {"name": BOT_NAME},
                "page": {"title": "Project talk:Sanctions"},
            },
        )
        assert resp.json()["data"] == {
            "decision": "suppress_with_compensation",
            "suppressed": True,
            "watchers_updated": 2,
        }

        resp = await client.get("/api/watchlist", params={"title": "Project talk:Sanctions"})
        watchers = resp.json()["data"]
        assert [w["user_name"] for w in watchers] == ["Alice", "Bob"]
        assert all(w["notification_timestamp"] for w in watchers)

    async def test_human_email_continues(self, app_client):
        client, _ = app_client
        resp = await client.post(
            "/api/sanctions/notifications/email",
            json={"editor": {"name": "Alice"}, "page": {"title": "Project talk:Sanctions"}},
        )
        assert resp.json()["data"]["decision"] == "continue"

    async def test_bot_event_suppressed(self, app_client):
        client, _ = app_client
        resp = await client.post(
            "/api/sanctions/notifications/event",
            json={"agent": {"name": BOT_NAME}, "event_type": "flow-new-topic"},
        )
        assert resp.json()["data"] == {"decision": "suppress", "suppressed": True}

    async def test_event_without_agent(self, app_client):
        client, _ = app_client
        resp = await client.post("/api/sanctions/notifications/event", json={})
        assert resp.json()["data"]["decision"] == "continue"


class TestHealth:
    async def test_health(self, app_client):
        client, _ = app_client
        resp = await client.get("/health")
        assert resp.json() == {"status": "ok", "env": "development"}

    async def test_events_health(self, app_client):
        client, _ = app_client
        resp = await client.get("/api/sanctions/events/health")
        assert resp.json() == {"status": "ok", "subscribers": 0}

    async def test_unknown_event_type_rejected(self, app_client):
        client, _ = app_client
        resp = await client.get(
            "/api/sanctions/events/stream", params={"event_type": "game.completed"}
        )
        assert resp.status_code == 400
