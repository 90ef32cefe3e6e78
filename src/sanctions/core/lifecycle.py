"""Sanction lifecycle: the Open → Expired → Enacted state machine.

Expiry is detected lazily: a page view (or the optional sweep) evaluates the
sanction and applies whatever transition is due. The evaluator functions are
pure; every write happens here, through conditional repository updates, so
concurrent views of the same topic converge.

    Open ──refresh──▶ Open
    Open ──deadline──▶ Expired(passed | failed)
    Expired(passed) ──enact──▶ Enacted
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

import httpx

from sanctions.core.enactment import get_pass_policy
from sanctions.core.expiration import is_expired, needs_expiry_transition
from sanctions.core.identifier import BoardPage, TopicPage, classify
from sanctions.core.messages import DISCUSSION_PAGE_NAME, lookup_message
from sanctions.core.tally import refresh_tally
from sanctions.core.topics import resolve_topic
from sanctions.core.vote_right import can_vote
from sanctions.db.repository import to_sanction
from sanctions.exceptions import EnactmentUndelivered
from sanctions.models.actor import Actor
from sanctions.models.sanction import Sanction

if TYPE_CHECKING:
    from sanctions.config import Settings
    from sanctions.core.enactment import EnactmentTrigger
    from sanctions.core.event_bus import EventBus
    from sanctions.core.tally import VoteSource
    from sanctions.db.repository import Repository

logger = logging.getLogger(__name__)

BOARD_MODULE = "ext.sanctions.flow-board"
TOPIC_MODULE = "ext.sanctions.flow-topic"


@dataclass
class LifecycleContext:
    """Everything one unit of work needs. Built per request, never shared."""

    repo: Repository
    source: VoteSource
    enactment: EnactmentTrigger
    bus: EventBus
    settings: Settings
    now: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class PageView:
    """What a page view should render for the sanctions feature."""

    kind: Literal["board", "topic", "other"]
    modules: list[str] = field(default_factory=list)
    redirect_to: str | None = None
    sanction: Sanction | None = None
    show_vote_ui: bool = False
    refreshed: bool = False


async def _reload(ctx: LifecycleContext, sanction: Sanction) -> Sanction:
    row = await ctx.repo.get_sanction(sanction.id)
    return to_sanction(row) if row is not None else sanction


async def expire(ctx: LifecycleContext, sanction: Sanction) -> Sanction:
    """Flag an overdue sanction expired and fix its outcome from the frozen tally."""
    # The outcome must match the tally stored at the moment of expiry.
    sanction = await _reload(ctx, sanction)
    passed = get_pass_policy(ctx.settings)(sanction.tally)
    won = await ctx.repo.mark_expired(sanction.id, passed)
    sanction = await _reload(ctx, sanction)
    if won:
        logger.info(
            "sanction_expired id=%s passed=%s agree=%d disagree=%d",
            sanction.id,
            sanction.passed,
            sanction.tally.agree,
            sanction.tally.disagree,
        )
        await ctx.bus.publish(
            "sanction.expired",
            {"sanction_id": sanction.id, "passed": bool(sanction.passed)},
        )
    return sanction


async def enact(ctx: LifecycleContext, sanction: Sanction) -> Sanction:
    """Hand a passed sanction to the enactment subsystem, then flag it enacted.

    A failed or unheard enactment leaves the sanction un-enacted so a later view retries.
    """
    if not (sanction.expired and sanction.passed) or sanction.enacted:
        return sanction

    try:
        await ctx.enactment.enact(sanction)
    except (httpx.HTTPError, EnactmentUndelivered):
        logger.exception("sanction_enactment_failed id=%s", sanction.id)
        return sanction

    if await ctx.repo.mark_enacted(sanction.id):
        logger.info(
            "sanction_enacted id=%s subject=%s type=%s block_days=%d",
            sanction.id,
            sanction.subject,
            sanction.sanction_type,
            sanction.tally.block_days,
        )
    return await _reload(ctx, sanction)


async def evaluate_sanction(ctx: LifecycleContext, sanction: Sanction) -> tuple[Sanction, bool]:
    """Apply the transition due for *sanction* now.

    Returns the updated sanction and whether its tally was refreshed. An open
    sanction is refreshed exactly once; an expired one never is. When the
    platform cannot be reached the stored tally is kept and a later view
    catches up.
    """
    if not is_expired(sanction, ctx.now):
        try:
            sanction = await refresh_tally(
                ctx.repo, ctx.source, sanction, ctx.settings, ctx.now
            )
        except httpx.HTTPError:
            logger.exception("sanction_tally_failed id=%s", sanction.id)
            return sanction, False
        return sanction, True

    if needs_expiry_transition(sanction, ctx.now):
        sanction = await expire(ctx, sanction)

    sanction = await enact(ctx, sanction)
    return sanction, False


async def view_page(
    ctx: LifecycleContext,
    title: str | None,
    viewer: Actor | None,
    redirect: str | None = None,
) -> PageView:
    """Dispatch a page view on the page's classification.

    Invalid identifiers and topics without a sanction are ordinary pages.
    """
    board_name = lookup_message(DISCUSSION_PAGE_NAME, ctx.settings)
    page = classify(title, board_name, ctx.settings.sanctions_topic_namespace)

    if isinstance(page, BoardPage):
        # The board itself is not browsable; send readers to the listing.
        redirect_to = None if redirect == "no" else ctx.settings.sanctions_listing_path
        return PageView(kind="board", modules=[BOARD_MODULE], redirect_to=redirect_to)

    if isinstance(page, TopicPage):
        sanction = await resolve_topic(ctx.repo, page.identifier)
        if sanction is None:
            return PageView(kind="other")

        sanction, refreshed = await evaluate_sanction(ctx, sanction)
        show_vote_ui = not is_expired(sanction, ctx.now) and can_vote(
            viewer, ctx.settings, ctx.now
        )
        return PageView(
            kind="topic",
            modules=[TOPIC_MODULE],
            sanction=sanction,
            show_vote_ui=show_vote_ui,
            refreshed=refreshed,
        )

    return PageView(kind="other")


async def sweep_expired(ctx: LifecycleContext) -> list[Sanction]:
    """Expire every overdue sanction and retry pending enactments.

    Used by the optional scheduler; page views do the same work lazily.
    """
    touched: dict[str, Sanction] = {}
    for row in await ctx.repo.get_overdue_sanctions(ctx.now):
        sanction, _ = await evaluate_sanction(ctx, to_sanction(row))
        touched[sanction.id] = sanction
    for row in await ctx.repo.get_unenacted_passed():
        if row.id not in touched:
            touched[row.id] = await enact(ctx, to_sanction(row))
    return list(touched.values())
