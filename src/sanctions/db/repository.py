"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Lifecycle flags are written with conditional
UPDATEs so that concurrent requests can race on the same sanction without a
lock: an expired sanction's tally cannot be overwritten, and the expired and
enacted flags only ever move from false to true.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sanctions.db.models import SanctionRow, WatchedItemRow
from sanctions.models.sanction import Sanction, Tally


def to_sanction(row: SanctionRow) -> Sanction:
    """Convert an ORM row to the domain model."""
    return Sanction(
        id=row.id,
        identifier=row.identifier,
        subject=row.subject,
        sanction_type=row.sanction_type,  # type: ignore[arg-type]
        author=row.author or "",
        created_at=row.created_at,
        deadline=row.deadline,
        tally=Tally.model_validate(row.tally or {}),
        expired=bool(row.expired),
        passed=row.passed,
        enacted=bool(row.enacted),
        updated_at=row.updated_at,
    )


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Sanctions ---

    async def create_sanction(
        self,
        identifier: str,
        subject: str,
        sanction_type: str,
        deadline: datetime,
        author: str = "",
        created_at: datetime | None = None,
    ) -> SanctionRow:
        row = SanctionRow(
            identifier=identifier,
            subject=subject,
            sanction_type=sanction_type,
            author=author,
            deadline=deadline,
            tally=Tally().model_dump(mode="json"),
        )
        if created_at is not None:
            row.created_at = created_at
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_sanction(self, sanction_id: str) -> SanctionRow | None:
        return await self.session.get(SanctionRow, sanction_id, populate_existing=True)

    async def get_sanction_by_identifier(self, identifier: str) -> SanctionRow | None:
        stmt = (
            select(SanctionRow)
            .where(SanctionRow.identifier == identifier)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_sanctions_for_subject(self, subject: str) -> list[SanctionRow]:
        """All sanctions against a user, newest first."""
        stmt = (
            select(SanctionRow)
            .where(SanctionRow.subject == subject)
            .order_by(SanctionRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_open_sanctions(self) -> list[SanctionRow]:
        """Sanctions not yet flagged expired, earliest deadline first."""
        stmt = (
            select(SanctionRow)
            .where(SanctionRow.expired.is_(False))
            .order_by(SanctionRow.deadline)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_overdue_sanctions(self, now: datetime | None = None) -> list[SanctionRow]:
        """Sanctions past their deadline whose expired flag is still unset."""
        now = now or datetime.now(UTC)
        stmt = (
            select(SanctionRow)
            .where(SanctionRow.expired.is_(False), SanctionRow.deadline <= now)
            .order_by(SanctionRow.deadline)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_unenacted_passed(self) -> list[SanctionRow]:
        stmt = select(SanctionRow).where(
            SanctionRow.expired.is_(True),
            SanctionRow.passed.is_(True),
            SanctionRow.enacted.is_(False),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def write_tally(self, sanction_id: str, tally: Tally) -> bool:
        """Overwrite the tally snapshot unless the sanction has expired.

        Returns False when nothing was written (expired, or unknown id).
        """
        stmt = (
            update(SanctionRow)
            .where(SanctionRow.id == sanction_id, SanctionRow.expired.is_(False))
            .values(
                tally=tally.model_dump(mode="json"),
                agree_count=tally.agree,
                disagree_count=tally.disagree,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_expired(self, sanction_id: str, passed: bool) -> bool:
        """Set expired (and the outcome) once. Returns True only for the winning call."""
        stmt = (
            update(SanctionRow)
            .where(SanctionRow.id == sanction_id, SanctionRow.expired.is_(False))
            .values(expired=True, passed=passed, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_enacted(self, sanction_id: str) -> bool:
        """Set enacted once, and only for an expired sanction that passed."""
        stmt = (
            update(SanctionRow)
            .where(
                SanctionRow.id == sanction_id,
                SanctionRow.expired.is_(True),
                SanctionRow.passed.is_(True),
                SanctionRow.enacted.is_(False),
            )
            .values(enacted=True, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    # --- Watch list ---

    async def watch_page(self, user_name: str, title: str) -> WatchedItemRow:
        stmt = select(WatchedItemRow).where(
            WatchedItemRow.user_name == user_name,
            WatchedItemRow.title == title,
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is not None:
            return row
        row = WatchedItemRow(user_name=user_name, title=title)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_watchers(self, title: str) -> list[WatchedItemRow]:
        stmt = (
            select(WatchedItemRow)
            .where(WatchedItemRow.title == title)
            .order_by(WatchedItemRow.user_name)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_notification_timestamp(
        self,
        editor_name: str,
        title: str,
        timestamp: datetime,
    ) -> int:
        """Flag the page as changed for every watcher except the editor.

        Watchers whose marker is already set keep the older timestamp, so the
        marker still points at the first unseen change. Returns rows touched.
        """
        stmt = (
            update(WatchedItemRow)
            .where(
                WatchedItemRow.title == title,
                WatchedItemRow.user_name != editor_name,
                WatchedItemRow.notification_timestamp.is_(None),
            )
            .values(notification_timestamp=timestamp)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
