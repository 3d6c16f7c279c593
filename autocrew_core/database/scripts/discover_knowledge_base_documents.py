#!/usr/bin/env python3
"""
Backfill knowledge_base_documents from the chunks already in crew vector tables.

Usage:
    python -m autocrew_core.database.scripts.discover_knowledge_base_documents
    python -m autocrew_core.database.scripts.discover_knowledge_base_documents --client ACME-001
"""
import argparse
import asyncio
import sys
from typing import Optional

from sqlalchemy import select

from autocrew_core.database.connection import cleanup_engines, get_direct_session
from autocrew_core.database.knowledge_base import discover_documents
from autocrew_core.database.models import Clients
from autocrew_core.utils.logging_config import setup_script_logging

logger = setup_script_logging("discover_knowledge_base_documents")


async def main(client_code: Optional[str]) -> bool:
    try:
        async with get_direct_session() as session:
            if client_code:
                client_codes = [client_code]
            else:
                result = await session.execute(select(Clients.client_code).order_by(Clients.client_code))
                client_codes = list(result.scalars().all())

            logger.info(f"Scanning {len(client_codes)} client(s)")

            total = 0
            for code in client_codes:
                discovered = await discover_documents(session, code)
                logger.info(f"{code}: {discovered} new document(s)")
                total += discovered

            logger.info(f"Discovery complete: {total} document(s) backfilled")
        return True
    except Exception as e:
        logger.error(f"Discovery failed: {e}")
        return False
    finally:
        await cleanup_engines()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill knowledge base document metadata")
    parser.add_argument("--client", help="Only scan this client code (e.g. ACME-001)")
    args = parser.parse_args()

    success = asyncio.run(main(args.client))
    sys.exit(0 if success else 1)
