"""Topic resolution and sanction creation.

A topic either names a sanction or it doesn't; "doesn't" is the common case
(most topics are ordinary discussions) and is reported as None.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from sanctions.core.expiration import compute_deadline
from sanctions.core.identifier import Identifier
from sanctions.db.repository import to_sanction
from sanctions.exceptions import UnresolvedSanction
from sanctions.models.sanction import Sanction, SanctionType

if TYPE_CHECKING:
    from sanctions.config import Settings
    from sanctions.db.repository import Repository

logger = logging.getLogger(__name__)


async def resolve_topic(repo: Repository, identifier: Identifier) -> Sanction | None:
    """Look up the sanction bound to *identifier*. Pure read."""
    row = await repo.get_sanction_by_identifier(identifier.alnum)
    if row is None:
        return None
    return to_sanction(row)


async def require_sanction(repo: Repository, identifier: Identifier) -> Sanction:
    """Strict variant for callers that were handed an identifier to act on."""
    sanction = await resolve_topic(repo, identifier)
    if sanction is None:
        raise UnresolvedSanction(f"no sanction for topic {identifier}")
    return sanction


async def open_sanction(
    repo: Repository,
    identifier: Identifier,
    subject: str,
    sanction_type: SanctionType,
    author: str,
    settings: Settings,
    now: datetime | None = None,
) -> Sanction:
    """Bind a freshly opened proposal topic to a new sanction record.

    Raises ValueError if the topic already holds a sanction.
    """
    if await repo.get_sanction_by_identifier(identifier.alnum) is not None:
        raise ValueError(f"topic {identifier} already holds a sanction")

    created_at = now or datetime.now(UTC)
    try:
        row = await repo.create_sanction(
            identifier=identifier.alnum,
            subject=subject,
            sanction_type=sanction_type,
            author=author,
            created_at=created_at,
            deadline=compute_deadline(created_at, settings.sanctions_voting_period_days),
        )
    except IntegrityError as exc:
        # Lost a race with a concurrent create for the same topic
        raise ValueError(f"topic {identifier} already holds a sanction") from exc

    logger.info(
        "sanction_opened id=%s topic=%s subject=%s type=%s",
        row.id,
        row.identifier,
        subject,
        sanction_type,
    )
    return to_sanction(row)
