"""Vote tally engine.

Votes are template markers in topic posts: ``{{Agree}}``, ``{{Agree|7}}`` (a
proposed block of seven days) or ``{{Disagree}}``, with the template titles
taken from the localized configuration. Each refresh reads every post of the
topic and rebuilds the tally from scratch, so two refreshes racing on the
same sanction converge on the same snapshot and the last write simply wins.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

import httpx

from sanctions.core.expiration import is_expired
from sanctions.core.messages import (
    AGREE_TEMPLATE,
    BOT_NAME,
    DISAGREE_TEMPLATE,
    lookup_message,
    max_block_period,
)
from sanctions.core.vote_right import can_vote
from sanctions.db.repository import to_sanction
from sanctions.exceptions import SanctionMisuseError
from sanctions.models.sanction import Sanction, Stance, Tally, ThreadPost, VoterStance

if TYPE_CHECKING:
    from sanctions.config import Settings
    from sanctions.db.repository import Repository

logger = logging.getLogger(__name__)


# --- Vote source ---


class VoteSource(Protocol):
    """Where topic posts come from. The platform owns them; we only read."""

    async def fetch_posts(self, identifier: str) -> list[ThreadPost]: ...


class HttpVoteSource:
    """Reads topic posts from the discussion platform's JSON API."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_posts(self, identifier: str) -> list[ThreadPost]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}/topics/{identifier}/posts")
            resp.raise_for_status()
            data = resp.json()
        return [ThreadPost.model_validate(item) for item in data.get("posts", [])]


# --- Marker parsing ---


def _template_pattern(title: str) -> str:
    # Template names are case-insensitive in their first letter only.
    first, rest = title[:1], re.escape(title[1:])
    if first.lower() != first.upper():
        first = f"[{re.escape(first.upper())}{re.escape(first.lower())}]"
    else:
        first = re.escape(first)
    return first + rest


def _marker_regex(title: str) -> re.Pattern[str]:
    return re.compile(
        r"\{\{\s*(?:[Tt]emplate:\s*)?" + _template_pattern(title) + r"\s*(?:\|([^{}|]*))?\}\}"
    )


def parse_marker(
    content: str,
    agree_template: str,
    disagree_template: str,
) -> tuple[Stance, int | None] | None:
    """Extract the vote a post expresses, if any.

    Returns (stance, proposed period in days). A post carrying both an agree
    and a disagree marker expresses no vote.
    """
    agree = _marker_regex(agree_template).search(content)
    disagree = _marker_regex(disagree_template).search(content)
    if agree and disagree:
        return None
    if disagree:
        return "disagree", None
    if agree:
        period: int | None = None
        raw = (agree.group(1) or "").strip()
        if raw.isdigit():
            period = int(raw)
        return "agree", period
    return None


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def compute_tally(
    sanction: Sanction,
    posts: list[ThreadPost],
    settings: Settings,
    now: datetime | None = None,
) -> Tally | None:
    """Fold a topic's posts into a tally. Pure apart from configuration reads.

    Rules: each voter's latest marker before the deadline counts; posts by
    the subject, or by actors without vote-right, are ignored. For block
    sanctions the agreed block length is the floor of the mean proposed
    period, each proposal clamped to the configured maximum.

    Returns None when the vote templates are not configured, since no post
    can then be read as a vote.
    """
    now = now or datetime.now(UTC)
    agree_template = lookup_message(AGREE_TEMPLATE, settings)
    disagree_template = lookup_message(DISAGREE_TEMPLATE, settings)
    if agree_template is None or disagree_template is None:
        return None

    bot_name = lookup_message(BOT_NAME, settings)
    max_days = max_block_period(settings)
    deadline = _aware(sanction.deadline)

    latest: dict[str, VoterStance] = {}
    for post in sorted(posts, key=lambda p: (_aware(p.posted_at), p.id)):
        posted_at = _aware(post.posted_at)
        if posted_at >= deadline:
            continue
        if post.author.name == sanction.subject:
            continue
        if not can_vote(post.author, settings, posted_at, bot_name=bot_name):
            continue
        marker = parse_marker(post.content, agree_template, disagree_template)
        if marker is None:
            continue
        stance, period = marker
        if sanction.sanction_type != "block":
            period = None
        elif period is not None:
            period = max(period, 1)
            if max_days:
                period = min(period, max_days)
        latest[post.author.name] = VoterStance(
            voter=post.author.name,
            stance=stance,
            period_days=period,
            posted_at=posted_at,
        )

    voters = sorted(latest.values(), key=lambda v: v.voter)
    agree = [v for v in voters if v.stance == "agree"]
    periods = [v.period_days for v in agree if v.period_days is not None]
    block_days = sum(periods) // len(periods) if periods else 0

    return Tally(
        agree=len(agree),
        disagree=len(voters) - len(agree),
        block_days=block_days,
        voters=voters,
        counted_at=now,
    )


async def refresh_tally(
    repo: Repository,
    source: VoteSource,
    sanction: Sanction,
    settings: Settings,
    now: datetime | None = None,
) -> Sanction:
    """Recount an open sanction's votes and store the new snapshot.

    Raises SanctionMisuseError for an expired sanction. If the sanction
    expires between the read and the write, the stored (frozen) tally is
    returned instead of the fresh one. Without vote templates nothing is
    written and the stored tally stands.
    """
    now = now or datetime.now(UTC)
    if is_expired(sanction, now):
        raise SanctionMisuseError(f"refresh on expired sanction {sanction.id}")

    posts = await source.fetch_posts(sanction.identifier)
    tally = compute_tally(sanction, posts, settings, now)
    if tally is None:
        logger.warning("tally_skipped id=%s reason=configuration_missing", sanction.id)
        return sanction

    if not await repo.write_tally(sanction.id, tally):
        logger.warning("tally_write_skipped id=%s reason=expired_concurrently", sanction.id)
        row = await repo.get_sanction(sanction.id)
        return to_sanction(row) if row is not None else sanction

    if not tally.same_counts(sanction.tally):
        logger.info(
            "sanction_tallied id=%s agree=%d disagree=%d block_days=%d",
            sanction.id,
            tally.agree,
            tally.disagree,
            tally.block_days,
        )
    return sanction.model_copy(update={"tally": tally, "updated_at": now})
