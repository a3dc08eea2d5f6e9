"""
Run the end-of-day pipeline.

For each completed local day: compute daily summaries, verify the provider
forecasts against the primary station, then rebuild the bias store once
from the sliding window.

Usage:
    python scripts/run_daily_jobs.py
    python scripts/run_daily_jobs.py --date 2026-01-15
    python scripts/run_daily_jobs.py --backfill 30
"""

import argparse
import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from valleywx.config import settings
from valleywx.database import async_session, engine
from valleywx.utils.bias import recompute_correction_stats
from valleywx.utils.daily_summary import compute_daily_summaries
from valleywx.utils.logging_config import setup_logging, get_logger
from valleywx.utils.timeutils import local_today
from valleywx.utils.verification import verify_forecasts

# Setup logging
setup_logging()
logger = get_logger(__name__)


def days_to_process(target: Optional[date], backfill: int) -> List[date]:
    """Oldest first; defaults to yesterday in the valley timezone."""
    end = target or local_today() - timedelta(days=1)
    return [end - timedelta(days=offset) for offset in range(backfill - 1, -1, -1)]


async def run_daily_jobs(days: List[date], window_days: int) -> None:
    logger.info("=" * 60)
    logger.info(f"Running daily jobs for {days[0]} to {days[-1]}")
    logger.info("=" * 60)

    async with async_session() as session:
        try:
            for day in days:
                summaries = await compute_daily_summaries(session, day)
                verified = await verify_forecasts(session, day)
                logger.info(f"{day}: {summaries} summaries, {verified} verification records")

            written = await recompute_correction_stats(session, window_days=window_days, as_of=days[-1])
            logger.info(f"✓ Bias store rebuilt: {written} rows")
        finally:
            await engine.dispose()


def main():
    """Main entry point for the daily jobs script."""
    parser = argparse.ArgumentParser(
        description="Compute summaries, verify forecasts and rebuild correction statistics"
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Local date to process (default: yesterday)"
    )
    parser.add_argument(
        "--backfill",
        type=int,
        default=1,
        help="Number of days ending at --date to process"
    )
    parser.add_argument(
        "--window-days",
        type=int,
        default=settings.BIAS_WINDOW_DAYS,
        help="Sliding window for correction statistics"
    )
    args = parser.parse_args()

    if args.backfill < 1:
        parser.error("--backfill must be at least 1")

    try:
        asyncio.run(run_daily_jobs(days_to_process(args.date, args.backfill), args.window_days))
    except KeyboardInterrupt:
        logger.warning("Daily jobs interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"✗ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
