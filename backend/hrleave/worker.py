"""Worker process for scheduled ledger jobs.

Runs an asyncio loop that attempts the year rollover once daily, just after
local midnight. The rollover only opens rows on Jan 1 and is idempotent, so
a restart on that day is harmless.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta

from hrleave.config import get_settings
from hrleave.db import get_session_factory

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime) -> float:
    """Seconds from ``now`` to the next local midnight."""
    next_midnight = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return (next_midnight - now).total_seconds()


async def run_rollover_loop() -> None:
    """Main worker loop that runs the year rollover daily."""
    from hrleave.services.rollover import run_rollover_for_date

    logger.info("Ledger worker started")
    session_factory = get_session_factory()

    while True:
        today = date.today()
        try:
            async with session_factory() as session:
                result = await run_rollover_for_date(session, today)
            if result is not None:
                logger.info(
                    "Rollover run for %s: processed=%d skipped=%d errors=%d",
                    today,
                    result.processed,
                    result.skipped,
                    result.errors,
                )
        except Exception:
            logger.exception("Rollover run failed for %s", today)

        # Sleep to the next midnight, not a fixed interval: run time must not shift the schedule.
        await asyncio.sleep(seconds_until_next_run(datetime.now()))


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_rollover_loop())


if __name__ == "__main__":
    main()
