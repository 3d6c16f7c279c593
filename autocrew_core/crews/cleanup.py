"""
Maintenance for per-crew tables.

A crew table is orphaned when it matches the crew naming pattern but no crew
config references it, typically left behind by a provisioning run that died
before its compensation could finish.
"""
from dataclasses import dataclass
from typing import List, Set
import logging

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.crews.table_creator import drop_table
from autocrew_core.crews.table_generator import CREW_TABLE_PATTERN
from autocrew_core.database.models import Crews
from autocrew_core.schemas.crew_schemas import CrewConfig

logger = logging.getLogger(__name__)


@dataclass
class OrphanedTable:
    table_name: str
    table_type: str
    reason: str = "Not registered in any crew config"


@dataclass
class CrewTableStats:
    total_crew_tables: int
    registered_tables: int
    orphaned_tables: int
    vector_tables: int
    histories_tables: int


async def list_crew_tables(session: AsyncSession) -> List[str]:
    """Names of all tables in the public schema that follow the crew table pattern."""
    result = await session.execute(
        text(
            "SELECT table_name FROM information_schema.tables"
            " WHERE table_schema = 'public' AND table_name ~ :pattern"
            " ORDER BY table_name"
        ),
        {"pattern": CREW_TABLE_PATTERN.pattern},
    )
    return list(result.scalars().all())


async def get_registered_tables(session: AsyncSession) -> Set[str]:
    result = await session.execute(select(Crews.config))
    registered = set()
    for raw_config in result.scalars().all():
        registered.update(CrewConfig.from_raw(raw_config).table_names)
    return registered


async def find_orphaned_tables(session: AsyncSession) -> List[OrphanedTable]:
    crew_tables = await list_crew_tables(session)
    logger.info(f"Found {len(crew_tables)} tables matching crew pattern")
    if not crew_tables:
        return []

    registered = await get_registered_tables(session)
    orphaned = [
        OrphanedTable(
            table_name=name,
            table_type="vector" if "_vector_" in name else "histories",
        )
        for name in crew_tables
        if name not in registered
    ]

    if orphaned:
        logger.warning(f"Found {len(orphaned)} orphaned tables: {', '.join(t.table_name for t in orphaned)}")
    else:
        logger.info("No orphaned tables found")
    return orphaned


async def cleanup_orphaned_tables(session: AsyncSession, dry_run: bool = True) -> List[str]:
    """
    Drop orphaned crew tables.

    Args:
        session: Database session (committed when tables are dropped)
        dry_run: Only report what would be dropped

    Returns:
        Names that were dropped, or that would be dropped in a dry run
    """
    orphaned = await find_orphaned_tables(session)
    if not orphaned:
        return []

    if dry_run:
        for table in orphaned:
            logger.info(f"DRY RUN - would drop {table.table_name}")
        return [table.table_name for table in orphaned]

    cleaned = []
    for table in orphaned:
        if await drop_table(session, table.table_name):
            cleaned.append(table.table_name)
    await session.commit()

    logger.info(f"Cleaned up {len(cleaned)} of {len(orphaned)} orphaned tables")
    return cleaned


async def get_crew_table_stats(session: AsyncSession) -> CrewTableStats:
    crew_tables = await list_crew_tables(session)
    registered = await get_registered_tables(session)
    orphaned = [name for name in crew_tables if name not in registered]
    return CrewTableStats(
        total_crew_tables=len(crew_tables),
        registered_tables=len(crew_tables) - len(orphaned),
        orphaned_tables=len(orphaned),
        vector_tables=sum(1 for name in crew_tables if "_vector_" in name),
        histories_tables=sum(1 for name in crew_tables if "_histories_" in name),
    )
