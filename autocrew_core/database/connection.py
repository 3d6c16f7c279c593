"""
Database connection management using SQLAlchemy with async support.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from contextlib import asynccontextmanager
import asyncio
import logging

from autocrew_core.config.shared_settings import DATABASE_URL_DIRECT, DATABASE_URL_POOLED
from autocrew_core.database.models import Base

logger = logging.getLogger(__name__)

# asyncpg protocol errors during shutdown are harmless but noisy
logging.getLogger("asyncpg.protocol").setLevel(logging.CRITICAL)
logging.getLogger("sqlalchemy.pool.impl.AsyncAdaptedQueuePool").setLevel(logging.CRITICAL)


def create_direct_engine():
    """Create direct connection engine (port 5432) for DDL and maintenance scripts."""
    return create_async_engine(
        DATABASE_URL_DIRECT,
        echo=False,  # Set to True for SQL debugging
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=10,
        pool_size=5,
        max_overflow=10,
        connect_args={
            "server_settings": {"jit": "off"},
            # CREATE INDEX ... USING hnsw can take a while on a fresh table
            "command_timeout": 60,
        }
    )


def create_pooled_engine():
    """Create pooled connection engine (port 6543) for request handlers."""
    return create_async_engine(
        DATABASE_URL_POOLED,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=300,  # Shorter recycle for pooled connections
        pool_timeout=10,
        pool_size=5,
        max_overflow=10,
        # Pooled connection settings - compatible with pgbouncer
        connect_args={
            "statement_cache_size": 0,  # Disable prepared statements for pgbouncer
            "server_settings": {"jit": "off"},
            "command_timeout": 30,
        }
    )


direct_engine = create_direct_engine()  # For provisioning DDL and scripts
pooled_engine = create_pooled_engine()  # For API, high-concurrency operations

engine = direct_engine

DirectSessionLocal = async_sessionmaker(direct_engine, class_=AsyncSession, expire_on_commit=False)
PooledSessionLocal = async_sessionmaker(pooled_engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_direct_session():
    """Get direct connection session for provisioning and maintenance (port 5432)."""
    async with DirectSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_pooled_session():
    """Get pooled connection session for API operations (port 6543)."""
    async with PooledSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


get_db_session = get_direct_session


async def create_tables():
    """
    Create the static platform tables (clients, crews, conversations, knowledge_base_documents).
    Per-crew tables are created by provisioning, not here.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        raise


async def check_database_connection():
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful
    """
    try:
        async with get_direct_session() as session:
            await session.execute(text("SELECT 1"))
            logger.info("Database connection successful")
            return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def cleanup_engines():
    """
    Dispose of both engines. Call this before the event loop closes.
    """
    for label, eng in (("Direct", direct_engine), ("Pooled", pooled_engine)):
        try:
            await asyncio.wait_for(eng.dispose(), timeout=1.0)
            logger.info(f"{label} engine disposed")
        except asyncio.TimeoutError:
            logger.debug(f"{label} engine disposal timed out")
        except Exception as e:
            logger.debug(f"{label} engine disposal error (non-critical): {e}")
