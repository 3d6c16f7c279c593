#!/usr/bin/env python3
"""
Find and optionally drop crew tables that no crew config references.

Usage:
    python -m autocrew_core.database.scripts.cleanup_orphaned_tables            # dry run
    python -m autocrew_core.database.scripts.cleanup_orphaned_tables --confirm  # drop them
"""
import argparse
import asyncio
import sys

from autocrew_core.crews.cleanup import cleanup_orphaned_tables, find_orphaned_tables, get_crew_table_stats
from autocrew_core.database.connection import cleanup_engines, get_direct_session
from autocrew_core.utils.logging_config import setup_script_logging

logger = setup_script_logging("cleanup_orphaned_tables")


async def main(confirm: bool) -> bool:
    if not confirm:
        logger.info("Running in DRY RUN mode (no tables will be dropped). Use --confirm to drop them.")

    try:
        async with get_direct_session() as session:
            stats = await get_crew_table_stats(session)
            logger.info(
                f"Crew tables: total={stats.total_crew_tables} registered={stats.registered_tables} "
                f"orphaned={stats.orphaned_tables} vector={stats.vector_tables} "
                f"histories={stats.histories_tables}"
            )

            if stats.orphaned_tables == 0:
                logger.info("No orphaned tables found")
                return True

            for table in await find_orphaned_tables(session):
                logger.info(f"  - {table.table_name} ({table.table_type}): {table.reason}")

            cleaned = await cleanup_orphaned_tables(session, dry_run=not confirm)
            if confirm:
                logger.info(f"Dropped {len(cleaned)} table(s)")
            else:
                logger.info(f"{len(cleaned)} table(s) would be dropped; rerun with --confirm")
        return True
    except Exception as e:
        logger.error(f"Cleanup failed: {e}")
        return False
    finally:
        await cleanup_engines()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Drop crew tables not referenced by any crew")
    parser.add_argument("--confirm", action="store_true", help="Actually drop the orphaned tables")
    args = parser.parse_args()

    success = asyncio.run(main(args.confirm))
    sys.exit(0 if success else 1)
