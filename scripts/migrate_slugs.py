"""Assign canonical slugs to every news row that does not have one yet.

Rows are processed one at a time and committed individually, so a failure
on one row leaves the others migrated. Safe to re-run: rows that already
have a slug are never touched.
"""
import argparse
import asyncio
import logging
import time

from newsroom.config import get_settings
from newsroom.database import Database
from newsroom.services.news_service import backfill_slug, news_missing_slugs
from newsroom.services.slug_service import SlugResolver

logger = logging.getLogger("migrate_slugs")


async def migrate(database_url: str, dry_run: bool = False) -> int:
    settings = get_settings()
    database = Database(database_url)
    migrated = failed = 0
    start = time.perf_counter()

    try:
        async with database.session_factory() as session:
            pending = await news_missing_slugs(session)
            logger.info("Found %d news without a slug", len(pending))
            slugs = SlugResolver(session, max_attempts=settings.SLUG_MAX_ATTEMPTS)

            for news_id, title in pending:
                if dry_run:
                    logger.info("[dry-run] id=%s title=%r", news_id, title)
                    continue
                slug = await backfill_slug(session, news_id, title, slugs)
                if slug is None:
                    failed += 1
                    continue
                await session.commit()
                migrated += 1
    finally:
        await database.dispose()

    logger.info(
        "Migrated %d slugs, %d failed, in %.2fs", migrated, failed, time.perf_counter() - start
    )
    return migrated


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill canonical slugs for existing news")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL from settings")
    parser.add_argument("--dry-run", action="store_true", help="List pending rows without writing")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_settings().LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(migrate(args.database_url or get_settings().DATABASE_URL, dry_run=args.dry_run))
