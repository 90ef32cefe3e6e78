"""Expire sanctions whose voting window has closed and retry pending enactments.

For deployments that run the sweep from cron instead of the in-process
scheduler.

Usage:
    python scripts/expire_overdue_sanctions.py          # dry-run
    python scripts/expire_overdue_sanctions.py --apply  # write to DB
"""

import asyncio
import sys


async def main(apply: bool) -> None:
    from sanctions.config import Settings
    from sanctions.core.event_bus import EventBus
    from sanctions.core.scheduler_runner import tick_sweep
    from sanctions.core.tally import HttpVoteSource
    from sanctions.db.engine import create_engine, get_session
    from sanctions.db.repository import Repository, to_sanction

    settings = Settings()
    engine = create_engine(settings.database_url)

    async with get_session(engine) as session:
        repo = Repository(session)
        overdue = [to_sanction(row) for row in await repo.get_overdue_sanctions()]
        pending = [to_sanction(row) for row in await repo.get_unenacted_passed()]

    for sanction in overdue:
        print(
            f"  EXPIRE {sanction.identifier} | {sanction.sanction_type} vs {sanction.subject}"
            f" | agree={sanction.tally.agree} disagree={sanction.tally.disagree}"
        )
    for sanction in pending:
        print(f"  ENACT  {sanction.identifier} | {sanction.sanction_type} vs {sanction.subject}")

    print(f"\n{len(overdue)} to expire, {len(pending)} awaiting enactment.")

    if not overdue and not pending:
        print("Nothing to do.")
    elif not apply:
        print("Dry run. Re-run with --apply to write.")
    else:
        if not settings.sanctions_enactment_webhook_url:
            print("SANCTIONS_ENACTMENT_WEBHOOK_URL is not set; passed sanctions stay pending.")
        touched = await tick_sweep(
            engine,
            settings,
            EventBus(),
            HttpVoteSource(settings.sanctions_platform_api_url),
        )
        print(f"Applied. {touched} sanctions updated.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(apply="--apply" in sys.argv))
