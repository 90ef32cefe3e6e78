"""Sanction links offered next to users, diffs and history rows.

Only the decision and the link target live here; the wiki skin renders them.
Proposal links (user tools, diffs, history) are gated on vote-right; the
listing links on user pages and contributions are informational and always
shown for a relevant user.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from sanctions.core.messages import lookup_message
from sanctions.core.vote_right import can_vote
from sanctions.models.actor import Actor

if TYPE_CHECKING:
    from sanctions.config import Settings

SPECIAL_PAGE = "Special:Sanctions"


class ToolLink(BaseModel):
    id: str
    target: str
    text: str


def _link(link_id: str, subpage: str, message_key: str, settings: Settings) -> ToolLink:
    return ToolLink(
        id=link_id,
        target=f"{SPECIAL_PAGE}/{subpage}",
        text=lookup_message(message_key, settings) or link_id,
    )


def user_tool_link(viewer: Actor | None, user_name: str, settings: Settings) -> ToolLink | None:
    """The (talk | contribs | sanction) link after a user name."""
    if not can_vote(viewer, settings):
        return None
    return _link("sanctions-user-tool", user_name, "sanctions-link-on-user-tool", settings)


def diff_link(
    viewer: Actor | None,
    author_name: str,
    new_rev_id: int,
    old_rev_id: int | None,
    settings: Settings,
) -> ToolLink | None:
    """Propose a sanction over a specific diff."""
    if not can_vote(viewer, settings):
        return None
    ids = f"{old_rev_id}/{new_rev_id}" if old_rev_id is not None else str(new_rev_id)
    return _link("sanctions-diff", f"{author_name}/{ids}", "sanctions-link-on-diff", settings)


def history_link(
    viewer: Actor | None,
    author_name: str,
    rev_id: int,
    settings: Settings,
) -> ToolLink | None:
    if not can_vote(viewer, settings):
        return None
    return _link(
        "sanctions-history", f"{author_name}/{rev_id}", "sanctions-link-on-history", settings
    )


def toolbox_link(relevant_user: str | None, settings: Settings) -> ToolLink | None:
    if not relevant_user:
        return None
    return _link("t-sanctions", relevant_user, "sanctions-link-on-user-page", settings)


def contributions_link(user_name: str, settings: Settings) -> ToolLink:
    return _link("sanctions", user_name, "sanctions-link-on-user-contributes", settings)
