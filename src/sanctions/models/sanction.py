"""Sanction models: the sanction record with its tally, and thread posts.

A Sanction is a time-boxed vote held in a discussion topic. Votes are never
stored here as first-class records; they are read from the topic's posts and
folded into a Tally snapshot.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from sanctions.models.actor import Actor

SanctionType = Literal["insulting-name", "block"]

Stance = Literal["agree", "disagree"]

SanctionEventType = Literal[
    "sanction.created",
    "sanction.tallied",
    "sanction.expired",
    "sanction.enacted",
]


class VoterStance(BaseModel):
    """The vote a single actor currently holds on a sanction."""

    voter: str
    stance: Stance
    period_days: int | None = None
    posted_at: datetime


class Tally(BaseModel):
    """Result of counting a topic's votes at one point in time.

    Always a full recomputation from the topic's posts, never a delta.
    """

    agree: int = 0
    disagree: int = 0
    block_days: int = 0
    voters: list[VoterStance] = Field(default_factory=list)
    counted_at: datetime | None = None

    @property
    def total(self) -> int:
        return self.agree + self.disagree

    def same_counts(self, other: Tally) -> bool:
        """Compare vote content, ignoring when the count was taken."""
        return (
            self.agree == other.agree
            and self.disagree == other.disagree
            and self.block_days == other.block_days
            and self.voters == other.voters
        )


class Sanction(BaseModel):
    """A sanction proposal bound to one discussion topic."""

    id: str
    identifier: str
    subject: str
    sanction_type: SanctionType
    author: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    deadline: datetime
    tally: Tally = Field(default_factory=Tally)
    expired: bool = False
    passed: bool | None = None
    enacted: bool = False
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def status(self) -> str:
        if self.enacted:
            return "enacted"
        if not self.expired:
            return "open"
        return "passed" if self.passed else "failed"


class ThreadPost(BaseModel):
    """A single post in a discussion topic, as served by the platform."""

    id: str
    author: Actor
    content: str
    posted_at: datetime
