"""Bot action filter. Drops notifications generated by the sanctions bot.

The tally and enactment steps post to topics and edit pages as the bot
account. Without this filter every such action would notify watchers and
email editors, and those notifications would in turn look like activity.

Decisions are three-valued so the caller can see that a suppressed email
still needs its watch-list bookkeeping done.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Protocol

from sanctions.core.messages import BOT_NAME, lookup_message
from sanctions.models.actor import Actor, PageRef

if TYPE_CHECKING:
    from sanctions.config import Settings

logger = logging.getLogger(__name__)


class NotificationDecision(enum.Enum):
    """What the notification pipeline should do with one notification."""

    CONTINUE = "continue"
    SUPPRESS = "suppress"
    SUPPRESS_WITH_COMPENSATION = "suppress_with_compensation"

    @property
    def suppressed(self) -> bool:
        return self is not NotificationDecision.CONTINUE


def is_system_agent(actor: Actor | None, agent_name: str | None) -> bool:
    """True iff *actor* is the configured automated agent.

    No actor, or no configured agent name, is never the agent.
    """
    if actor is None or not agent_name:
        return False
    return actor.name == agent_name


class SystemAgentFilter(Protocol):
    """Recognizes the automated agent. Swap in a role-based check if needed."""

    def __call__(self, actor: Actor | None) -> bool: ...


class NameMatchFilter:
    """Agent recognition by display name, resolved once per evaluation."""

    def __init__(self, settings: Settings) -> None:
        self.agent_name = lookup_message(BOT_NAME, settings)

    def __call__(self, actor: Actor | None) -> bool:
        return is_system_agent(actor, self.agent_name)


def decide_email_notification(
    editor: Actor | None,
    page: PageRef,
    settings: Settings,
    agent_filter: SystemAgentFilter | None = None,
) -> NotificationDecision:
    """Decide whether an edit's email notification goes out.

    A bot edit is suppressed, but watchers must still get their unread marker
    updated, which is the compensation step. No identifiable editor means the
    email is sent.
    """
    if editor is None:
        return NotificationDecision.CONTINUE

    agent_filter = agent_filter or NameMatchFilter(settings)
    if not agent_filter(editor):
        return NotificationDecision.CONTINUE

    logger.debug("email_notification_suppressed page=%s editor=%s", page.title, editor.name)
    return NotificationDecision.SUPPRESS_WITH_COMPENSATION


def decide_event_notification(
    agent: Actor | None,
    settings: Settings,
    agent_filter: SystemAgentFilter | None = None,
) -> NotificationDecision:
    """Decide whether an in-app event notification is stored and delivered."""
    if agent is None:
        return NotificationDecision.CONTINUE

    agent_filter = agent_filter or NameMatchFilter(settings)
    if agent_filter(agent):
        logger.debug("event_notification_suppressed agent=%s", agent.name)
        return NotificationDecision.SUPPRESS
    return NotificationDecision.CONTINUE


def needs_watchlist_update(decision: NotificationDecision, settings: Settings) -> bool:
    """Compensation runs only when the wiki tracks unread state at all."""
    if decision is not NotificationDecision.SUPPRESS_WITH_COMPENSATION:
        return False
    return settings.enotif_watchlist or settings.show_updated_marker
