"""Notification boundary. Applies the bot filter's decisions.

The filter only decides; this module carries out the one side effect a
decision can imply, the watch-list update for a suppressed email.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sanctions.core.bot_filter import (
    NotificationDecision,
    decide_email_notification,
    decide_event_notification,
    needs_watchlist_update,
)
from sanctions.core.identifier import normalize_title
from sanctions.models.actor import Actor, PageRef

if TYPE_CHECKING:
    from sanctions.config import Settings
    from sanctions.db.repository import Repository

logger = logging.getLogger(__name__)


async def apply_notification_decision(
    repo: Repository,
    decision: NotificationDecision,
    editor: Actor,
    page: PageRef,
    settings: Settings,
    now: datetime | None = None,
) -> int:
    """Run compensation bookkeeping for *decision*. Returns watchers updated."""
    if not needs_watchlist_update(decision, settings):
        return 0
    updated = await repo.update_notification_timestamp(
        editor.name,
        normalize_title(page.title),
        now or datetime.now(UTC),
    )
    logger.info("watchlist_marked page=%s watchers=%d", page.title, updated)
    return updated


async def handle_email_notification(
    repo: Repository,
    editor: Actor | None,
    page: PageRef,
    settings: Settings,
    now: datetime | None = None,
) -> tuple[NotificationDecision, int]:
    """Decide on an edit's email and apply compensation when suppressed."""
    decision = decide_email_notification(editor, page, settings)
    updated = 0
    if editor is not None:
        updated = await apply_notification_decision(repo, decision, editor, page, settings, now)
    return decision, updated


def handle_event_notification(agent: Actor | None, settings: Settings) -> NotificationDecision:
    """Event notifications need no bookkeeping; the decision is final."""
    return decide_event_notification(agent, settings)
