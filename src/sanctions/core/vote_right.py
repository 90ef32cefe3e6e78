"""Vote-right gate: who may take part in sanction votes.

The actor is always passed in; there is no ambient current user. The bot
account never holds vote-right, so its own posts can never count as votes.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sanctions.core.bot_filter import is_system_agent
from sanctions.core.messages import BOT_NAME, lookup_message
from sanctions.models.actor import Actor

if TYPE_CHECKING:
    from sanctions.config import Settings


def can_vote(
    actor: Actor | None,
    settings: Settings,
    now: datetime | None = None,
    *,
    bot_name: str | None = None,
) -> bool:
    """Return True if *actor* may cast (and see) sanction votes.

    Requires a registered, unblocked account with at least
    ``sanctions_vote_min_edits`` edits that is at least
    ``sanctions_vote_min_account_age_days`` old.
    """
    if actor is None or not actor.is_registered or actor.is_blocked:
        return False

    if bot_name is None:
        bot_name = lookup_message(BOT_NAME, settings)
    if is_system_agent(actor, bot_name):
        return False

    if actor.edit_count < settings.sanctions_vote_min_edits:
        return False

    min_age = timedelta(days=settings.sanctions_vote_min_account_age_days)
    if min_age > timedelta(0):
        if actor.registered_at is None:
            return False
        now = now or datetime.now(UTC)
        registered_at = actor.registered_at
        if registered_at.tzinfo is None:
            registered_at = registered_at.replace(tzinfo=UTC)
        if now - registered_at < min_age:
            return False

    return True
