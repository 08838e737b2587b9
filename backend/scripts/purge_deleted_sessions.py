"""
Hard-delete chat sessions that were soft-deleted a while ago.

Usage:
    cd backend
    python -m scripts.purge_deleted_sessions              # older than 30 days
    python -m scripts.purge_deleted_sessions --days 7
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# Ensure backend root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.logger import logger
from app.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
from app.infrastructure.local.database import init_db
from app.utils.datetime_utils import days_ago_utc


async def purge(days: int) -> int:
    await init_db()
    cutoff = days_ago_utc(days)
    repo = SqliteChatSessionRepository()
    purged = await repo.purge_deleted_sessions(cutoff)
    logger.info(f"Purged {purged} chat session(s) deleted before {cutoff.isoformat()}")
    return purged


def main() -> None:
    parser = argparse.ArgumentParser(description="Hard-delete soft-deleted chat sessions.")
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Only purge sessions deleted more than this many days ago (default: 30).",
    )
    args = parser.parse_args()
    if args.days < 0:
        parser.error("--days must be >= 0")
    asyncio.run(purge(args.days))


if __name__ == "__main__":
    main()
