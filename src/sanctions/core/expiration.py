"""Expiration evaluator: has a sanction's voting window closed?

Pure functions of the sanction and the evaluation time. The flag write that
follows a positive answer happens in the lifecycle module.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sanctions.models.sanction import Sanction


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def is_expired(sanction: Sanction, now: datetime | None = None) -> bool:
    """True once the deadline has passed, or once the sanction is flagged expired."""
    if sanction.expired:
        return True
    now = now or datetime.now(UTC)
    return _aware(now) >= _aware(sanction.deadline)


def needs_expiry_transition(sanction: Sanction, now: datetime | None = None) -> bool:
    """Deadline passed but the stored flag has not caught up yet."""
    return not sanction.expired and is_expired(sanction, now)


def compute_deadline(created_at: datetime, voting_period_days: int) -> datetime:
    return _aware(created_at) + timedelta(days=voting_period_days)


def time_remaining(sanction: Sanction, now: datetime | None = None) -> timedelta:
    """Zero once expired, never negative."""
    if is_expired(sanction, now):
        return timedelta(0)
    now = now or datetime.now(UTC)
    return _aware(sanction.deadline) - _aware(now)
