"""SQLAlchemy ORM models for the sanctions database.

Tables: sanctions (one row per proposal, keyed by its topic identifier) and
watched_items (the watch-list rows touched by notification bookkeeping).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class SanctionRow(Base):
    """A sanction proposal. The tally columns are a snapshot, rewritten whole."""

    __tablename__ = "sanctions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    identifier: Mapped[str] = mapped_column(String(19), nullable=False, unique=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    sanction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    author: Mapped[str] = mapped_column(String(255), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    agree_count: Mapped[int] = mapped_column(Integer, default=0)
    disagree_count: Mapped[int] = mapped_column(Integer, default=0)
    tally: Mapped[dict] = mapped_column(JSON, default=dict)
    expired: Mapped[bool] = mapped_column(Boolean, default=False)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    enacted: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("ix_sanctions_subject", "subject"),
        Index("ix_sanctions_open_deadline", "expired", "deadline"),
    )


class WatchedItemRow(Base):
    """A user watching a page. A null notification_timestamp means "seen"."""

    __tablename__ = "watched_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    notification_timestamp: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_name", "title", name="uq_watched_item"),
        Index("ix_watched_items_title", "title"),
    )
