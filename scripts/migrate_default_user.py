#!/usr/bin/env python3
"""
Backfill script: assigns a placeholder author to posts that predate sign-in.

Creates (once):
  • the user "default-user" <default@example.com>
and sets it as author of every post whose author_id is NULL.

Run against the configured database (DB_* env vars or .env):
  python scripts/migrate_default_user.py
or an explicit one:
  python scripts/migrate_default_user.py --database-url mysql+aiomysql://root:@localhost:3306/blog

Safe to re-run; a second run changes nothing.
"""
import argparse
import asyncio
import logging
import sys

from blog_api.config import Settings
from blog_api.database import create_engine, create_session_factory, init_db
from blog_api.maintenance import backfill_legacy_authors

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger("migrate_default_user")


async def run(settings: Settings) -> int:
    engine = create_engine(settings)
    try:
        await init_db(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            async with session.begin():
                return await backfill_legacy_authors(session)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--database-url", help="SQLAlchemy async URL (overrides DB_* settings)")
    args = parser.parse_args()

    settings = Settings()
    if args.database_url:
        settings = Settings(database_url=args.database_url)

    logger.info("Starting legacy author backfill")
    try:
        updated = asyncio.run(run(settings))
    except Exception:
        logger.exception("Backfill failed")
        return 1
    logger.info("Backfill complete: %d posts updated", updated)
    return 0


if __name__ == "__main__":
    sys.exit(main())
