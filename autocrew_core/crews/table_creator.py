"""
DDL for per-crew tables.

Vector table (RAG chunks):
- id UUID, content TEXT, metadata JSONB, embedding VECTOR(dim), created_at
- HNSW index on embedding (cosine), GIN index on metadata

Histories table (chat memory):
- id SERIAL, session_id TEXT, message JSONB, created_at
- indexes on session_id and created_at DESC

Statements run on the caller's session; the caller commits.
"""
from typing import Iterable, Optional
import logging
import re

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.config import shared_settings
from autocrew_core.crews.table_generator import sanitize_table_name

logger = logging.getLogger(__name__)

# Platform tables drop_table must never touch, whatever their name looks like
SYSTEM_TABLES = frozenset({
    "users",
    "clients",
    "crews",
    "conversations",
    "knowledge_base_documents",
    "session",
    "account",
    "verification",
    "member",
    "organization",
    "invitation",
})

# drop_table checks names on its own, without going through sanitize_table_name
DROPPABLE_NAME = re.compile(r"^[a-z0-9_]+$")
MAX_DROPPABLE_LENGTH = 63


async def create_vector_table(session: AsyncSession, table_name: str, dimension: Optional[int] = None) -> None:
    """Create a crew vector table with its HNSW and GIN indexes."""
    name = sanitize_table_name(table_name)
    dimension = dimension or shared_settings.VECTOR_EMBEDDING_DIMENSION

    try:
        await session.execute(text(f"""
            CREATE TABLE {name} (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                content TEXT NOT NULL,
                metadata JSONB DEFAULT '{{}}'::jsonb,
                embedding VECTOR({int(dimension)}),
                created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
            )
        """))

        await session.execute(text(f"""
            CREATE INDEX {name}_embedding_idx
            ON {name}
            USING hnsw (embedding vector_cosine_ops)
        """))

        await session.execute(text(f"""
            CREATE INDEX {name}_metadata_idx
            ON {name}
            USING gin (metadata)
        """))

        logger.info(f"Created vector table: {name}")
    except Exception as e:
        logger.error(f"Failed to create vector table {name}: {e}")
        raise


async def create_histories_table(session: AsyncSession, table_name: str) -> None:
    """Create a crew chat histories table with its session and time indexes."""
    name = sanitize_table_name(table_name)

    try:
        await session.execute(text(f"""
            CREATE TABLE {name} (
                id SERIAL PRIMARY KEY,
                session_id TEXT NOT NULL,
                message JSONB NOT NULL,
                created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
            )
        """))

        await session.execute(text(f"""
            CREATE INDEX {name}_session_id_idx
            ON {name} (session_id)
        """))

        await session.execute(text(f"""
            CREATE INDEX {name}_created_at_idx
            ON {name} (created_at DESC)
        """))

        logger.info(f"Created histories table: {name}")
    except Exception as e:
        logger.error(f"Failed to create histories table {name}: {e}")
        raise


async def drop_table(session: AsyncSession, table_name: str) -> bool:
    """
    Drop a crew table. Never raises.

    Accepts both the current "__" names and legacy unprefixed ones, but only
    names that look like crew tables (contain "vector" or "histories").

    Returns:
        True if the DROP statement ran, False if the name was rejected or the drop failed
    """
    if not table_name or not isinstance(table_name, str):
        logger.error(f"Invalid table name: {table_name!r}")
        return False

    if table_name in SYSTEM_TABLES:
        logger.error(f"Refusing to drop system table: {table_name}")
        return False

    if not DROPPABLE_NAME.fullmatch(table_name):
        logger.error(f"Invalid characters in table name: {table_name}")
        return False

    if len(table_name) > MAX_DROPPABLE_LENGTH:
        logger.error(f"Table name exceeds PostgreSQL limit: {table_name}")
        return False

    if "vector" not in table_name and "histories" not in table_name:
        logger.error(f"Refusing to drop non-crew table: {table_name}")
        return False

    try:
        # Savepoint so a failed drop does not poison the caller's transaction
        async with session.begin_nested():
            await session.execute(text(f'DROP TABLE IF EXISTS "{table_name}" CASCADE'))
        logger.info(f"Dropped table: {table_name}")
        return True
    except Exception as e:
        logger.error(f"Failed to drop table {table_name}: {e}")
        return False


async def drop_tables(session: AsyncSession, table_names: Iterable[str]) -> int:
    """Drop several crew tables in order. Returns how many were dropped."""
    dropped = 0
    for table_name in table_names:
        if await drop_table(session, table_name):
            dropped += 1
    return dropped
