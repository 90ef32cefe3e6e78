"""Scheduled expiry sweep.

Page views expire sanctions lazily. On a quiet board a sanction can sit past
its deadline for days, so deployments may opt into a periodic sweep by
setting ``SANCTIONS_SWEEP_CRON``. The sweep runs the same lifecycle code a
page view runs, in its own session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sanctions.core.enactment import build_enactment_trigger
from sanctions.core.lifecycle import LifecycleContext, sweep_expired
from sanctions.db.engine import get_session
from sanctions.db.repository import Repository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from sanctions.config import Settings
    from sanctions.core.event_bus import EventBus
    from sanctions.core.tally import VoteSource

logger = logging.getLogger(__name__)


async def tick_sweep(
    engine: AsyncEngine,
    settings: Settings,
    event_bus: EventBus,
    vote_source: VoteSource,
) -> int:
    """Run one sweep. Returns the number of sanctions touched."""
    async with get_session(engine) as session:
        ctx = LifecycleContext(
            repo=Repository(session),
            source=vote_source,
            enactment=build_enactment_trigger(settings, event_bus),
            bus=event_bus,
            settings=settings,
        )
        touched = await sweep_expired(ctx)
    if touched:
        logger.info("sweep_completed touched=%d", len(touched))
    return len(touched)


def start_sweep_scheduler(
    engine: AsyncEngine,
    settings: Settings,
    event_bus: EventBus,
    vote_source: VoteSource,
):
    """Start an AsyncIOScheduler running tick_sweep on the configured cron, or None."""
    if not settings.sanctions_sweep_cron:
        logger.info("sweep_disabled")
        return None

    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from apscheduler.triggers.cron import CronTrigger

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        tick_sweep,
        trigger=CronTrigger.from_crontab(settings.sanctions_sweep_cron),
        kwargs={
            "engine": engine,
            "settings": settings,
            "event_bus": event_bus,
            "vote_source": vote_source,
        },
        id="sweep_expired",
        name="Expire overdue sanctions",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("sweep_started cron=%s", settings.sanctions_sweep_cron)
    return scheduler
