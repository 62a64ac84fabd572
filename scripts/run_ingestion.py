"""
Script to ingest price history for one date or an inclusive date range
"""

import argparse
import asyncio
import sys
import os
import logging
from datetime import date

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.logging import setup_logging
from core.services import build_services
from events.dispatcher import BACKFILL_PRICE_HISTORY, INGEST_PRICE_HISTORY

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ingest daily price history")
    parser.add_argument("--date", type=date.fromisoformat, help="Single date (YYYY-MM-DD); defaults to yesterday UTC")
    parser.add_argument("--start", type=date.fromisoformat, help="Backfill start date (inclusive)")
    parser.add_argument("--end", type=date.fromisoformat, help="Backfill end date (inclusive)")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args(argv)

    if (args.start is None) != (args.end is None):
        parser.error("--start and --end must be given together")
    if args.start is not None and args.date is not None:
        parser.error("--date cannot be combined with --start/--end")
    if args.start is not None and args.start > args.end:
        parser.error("--start must be on or before --end")
    return args


async def run_ingestion(args) -> int:
    """Run the requested job; returns the process exit code"""
    services = build_services(settings, with_scheduler=False)

    try:
        if args.create_tables:
            await services.database.create_all()

        if args.start is not None:
            results = await services.dispatcher.dispatch(
                BACKFILL_PRICE_HISTORY,
                {"start": args.start.isoformat(), "end": args.end.isoformat()}
            )
            for result in results:
                logger.info(f"{result['date']}: {result['status']}")
            return 1 if any(r["status"] == "failed" for r in results) else 0

        payload = {"date": args.date.isoformat()} if args.date else {}
        result = await services.dispatcher.dispatch(INGEST_PRICE_HISTORY, payload)
        logger.info(
            f"Ingestion {result['status']} for {result['date']}: "
            f"{result['entries_count']} entries, {result['upserted']} rows upserted"
        )
        return 0

    except Exception as e:
        logger.error(f"Ingestion error: {str(e)}")
        return 1
    finally:
        await services.aclose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_ingestion(parse_args())))
