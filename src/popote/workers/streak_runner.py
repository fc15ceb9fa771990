"""One-shot streak reconciliation, for system cron or manual catch-up.

Usage: python -m popote.workers.streak_runner [--date YYYY-MM-DD]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date

from popote.config import get_settings
from popote.database import close_db, get_session_factory, init_db
from popote.progression.streak_service import reconcile_all_streaks

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def run(today: date | None = None) -> tuple[int, int]:
    """Reconcile every live streak as of ``today`` (UTC today by default)."""
    settings = get_settings()
    await init_db(settings.database_url)
    try:
        async with get_session_factory()() as db:
            checked, reset = await reconcile_all_streaks(db, today)
    finally:
        await close_db()
    logger.info("Streak reconciliation done: %d checked, %d reset", checked, reset)
    return checked, reset


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Reset streaks of users inactive since before yesterday.")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Reference day (UTC), YYYY-MM-DD")
    args = parser.parse_args(argv)
    asyncio.run(run(args.date))


if __name__ == "__main__":
    main()
