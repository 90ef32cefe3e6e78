"""Notification hook endpoints, consulted by the notification pipeline before dispatch."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from sanctions.api.deps import RepoDep, SettingsDep
from sanctions.core.identifier import normalize_title
from sanctions.core.notifications import handle_email_notification, handle_event_notification
from sanctions.db.models import WatchedItemRow
from sanctions.models.actor import Actor, PageRef

router = APIRouter(prefix="/api", tags=["notifications"])


# --- Request Models ---


class EmailNotificationRequest(BaseModel):
    editor: Actor | None = None
    page: PageRef


class EventNotificationRequest(BaseModel):
    agent: Actor | None = None
    event_type: str = ""


class WatchRequest(BaseModel):
    user_name: str
    title: str


def _watch_data(row: WatchedItemRow) -> dict:
    return {
        "user_name": row.user_name,
        "title": row.title,
        "notification_timestamp": (
            row.notification_timestamp.isoformat() if row.notification_timestamp else None
        ),
    }


# --- Endpoints ---


@router.post("/sanctions/notifications/email")
async def api_email_notification(
    body: EmailNotificationRequest,
    repo: RepoDep,
    settings: SettingsDep,
) -> dict:
    """Should this edit's email go out? Performs watch-list bookkeeping when not."""
    decision, updated = await handle_email_notification(repo, body.editor, body.page, settings)
    return {
        "data": {
            "decision": decision.value,
            "suppressed": decision.suppressed,
            "watchers_updated": updated,
        }
    }


@router.post("/sanctions/notifications/event")
async def api_event_notification(body: EventNotificationRequest, settings: SettingsDep) -> dict:
    """Should this in-app event notification be stored?"""
    decision = handle_event_notification(body.agent, settings)
    return {"data": {"decision": decision.value, "suppressed": decision.suppressed}}


@router.post("/watchlist", status_code=201)
async def api_watch_page(body: WatchRequest, repo: RepoDep) -> dict:
    """Mirror a watch-list entry from the wiki."""
    row = await repo.watch_page(body.user_name, normalize_title(body.title))
    return {"data": _watch_data(row)}


@router.get("/watchlist")
async def api_get_watchers(title: str, repo: RepoDep) -> dict:
    rows = await repo.get_watchers(normalize_title(title))
    return {"data": [_watch_data(row) for row in rows]}
