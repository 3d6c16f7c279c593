"""
Knowledge base database helpers.

Documents live in two places:
- knowledge_base_documents: one metadata row per upload, for fast list queries
- the crew's vector table: the embedded chunks, correlated by metadata->>'docId'
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import logging
import re

from sqlalchemy import Integer, and_, cast, delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.database.models import Crews, KnowledgeBaseDocuments
from autocrew_core.database.vector_tables import get_vector_table
from autocrew_core.schemas.crew_schemas import CrewConfig, CrewType
from autocrew_core.schemas.knowledge_base_schemas import DocumentStatus, VectorChunk
from autocrew_core.utils.logging_config import log_with_context

logger = logging.getLogger(__name__)

SAFE_TABLE_NAME = re.compile(r"^[a-z0-9_]+$")


@dataclass
class DocumentWithChunks:
    document: KnowledgeBaseDocuments
    chunks: List[VectorChunk] = field(default_factory=list)


def _check_table_name(name: str) -> None:
    if not name or not SAFE_TABLE_NAME.fullmatch(name):
        raise ValueError(f"Invalid table name: {name}")


async def get_documents(
    session: AsyncSession,
    client_id: Optional[str] = None,
    crew_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[KnowledgeBaseDocuments]:
    """List document metadata, newest first."""
    conditions = []
    if client_id:
        conditions.append(KnowledgeBaseDocuments.client_id == client_id)
    if crew_id:
        conditions.append(KnowledgeBaseDocuments.crew_id == crew_id)
    if status:
        conditions.append(KnowledgeBaseDocuments.status == status)

    stmt = select(KnowledgeBaseDocuments)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = stmt.order_by(KnowledgeBaseDocuments.created_at.desc()).limit(limit).offset(offset)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_document_by_id(session: AsyncSession, doc_id: str) -> Optional[KnowledgeBaseDocuments]:
    result = await session.execute(
        select(KnowledgeBaseDocuments).where(KnowledgeBaseDocuments.doc_id == doc_id).limit(1)
    )
    return result.scalars().first()


async def get_document_with_chunks(session: AsyncSession, doc_id: str) -> Optional[DocumentWithChunks]:
    """Load a document's metadata and, when its crew has a vector table, its chunks."""
    doc = await get_document_by_id(session, doc_id)
    if doc is None:
        return None

    result = await session.execute(select(Crews).where(Crews.id == doc.crew_id).limit(1))
    crew = result.scalars().first()
    if crew is None:
        return None

    config = CrewConfig.from_raw(crew.config)
    chunks = []
    if config.vector_table_name:
        chunks = await query_vector_table(session, config.vector_table_name, doc_id)
    return DocumentWithChunks(document=doc, chunks=chunks)


async def query_vector_table(session: AsyncSession, table_name: str, doc_id: str) -> List[VectorChunk]:
    """
    Fetch a document's chunks ordered by chunkIndex.

    Errors (including an invalid table name) are logged and an empty list is returned.
    """
    try:
        _check_table_name(table_name)
        table = get_vector_table(table_name)
        meta = table.c["metadata"]
        stmt = (
            select(table.c.id, table.c.content, meta.label("metadata"), table.c.created_at)
            .where(meta["docId"].astext == doc_id)
            .order_by(cast(meta["chunkIndex"].astext, Integer).asc())
        )
        result = await session.execute(stmt)
        return [VectorChunk(**dict(row)) for row in result.mappings().all()]
    except Exception as e:
        log_with_context(
            logger, "error",
            f"Failed to query vector table: {e}",
            context={"table_name": table_name, "doc_id": doc_id, "operation": "query_vector_table"},
        )
        return []


async def delete_document(session: AsyncSession, doc_id: str, vector_table_name: str) -> int:
    """
    Delete a document's chunks and its metadata row. The caller commits.

    Returns:
        Number of chunks removed from the vector table
    """
    try:
        _check_table_name(vector_table_name)
        table = get_vector_table(vector_table_name)
        result = await session.execute(
            delete(table)
            .where(table.c["metadata"]["docId"].astext == doc_id)
            .returning(table.c.id)
        )
        removed = len(result.fetchall())

        await session.execute(
            delete(KnowledgeBaseDocuments).where(KnowledgeBaseDocuments.doc_id == doc_id)
        )
        return removed
    except Exception as e:
        log_with_context(
            logger, "error",
            f"Failed to delete document {doc_id}: {e}",
            context={"doc_id": doc_id, "vector_table_name": vector_table_name, "operation": "delete_document"},
        )
        raise


async def discover_documents(session: AsyncSession, client_id: str) -> int:
    """
    Scan each support crew's vector table and create metadata rows for documents
    that have chunks but no knowledge_base_documents entry.

    A failing crew is logged and skipped.

    Returns:
        Number of metadata rows created
    """
    result = await session.execute(
        select(Crews).where(
            and_(Crews.client_id == client_id, Crews.type == CrewType.CUSTOMER_SUPPORT.value)
        )
    )
    client_crews = list(result.scalars().all())

    result = await session.execute(
        select(KnowledgeBaseDocuments.doc_id).where(KnowledgeBaseDocuments.client_id == client_id)
    )
    existing_doc_ids = set(result.scalars().all())

    created = 0
    for crew in client_crews:
        config = CrewConfig.from_raw(crew.config)
        table_name = config.vector_table_name
        if not table_name:
            continue

        if not SAFE_TABLE_NAME.fullmatch(table_name):
            log_with_context(
                logger, "error",
                f"Invalid vector table name detected: {table_name}",
                context={"crew_id": str(crew.id), "operation": "discover_documents"},
                client_id=client_id,
            )
            continue

        try:
            table = get_vector_table(table_name)
            meta = table.c["metadata"]
            doc_key = meta["docId"].astext.label("doc_id")
            filename = meta["filename"].astext.label("filename")
            file_type = meta["fileType"].astext.label("file_type")
            file_size = cast(meta["fileSize"].astext, Integer).label("file_size")
            stmt = (
                select(
                    doc_key,
                    filename,
                    file_type,
                    file_size,
                    func.count().label("chunk_count"),
                    func.min(table.c.created_at).label("created_at"),
                )
                .where(meta["docId"].astext.isnot(None))
                .group_by(doc_key, filename, file_type, file_size)
            )
            rows = (await session.execute(stmt)).mappings().all()

            discovered = []
            for row in rows:
                if row["doc_id"] in existing_doc_ids or row["doc_id"] in discovered:
                    continue
                await session.execute(
                    insert(KnowledgeBaseDocuments).values(
                        doc_id=row["doc_id"],
                        client_id=client_id,
                        crew_id=crew.id,
                        filename=row["filename"] or "Unknown Document",
                        file_type=row["file_type"] or "application/pdf",
                        file_size=row["file_size"] or 0,
                        chunk_count=int(row["chunk_count"]),
                        status=DocumentStatus.INDEXED.value,
                        created_at=row["created_at"] or datetime.now(timezone.utc),
                        updated_at=datetime.now(timezone.utc),
                    )
                )
                discovered.append(row["doc_id"])

            await session.commit()
            existing_doc_ids.update(discovered)
            created += len(discovered)
        except Exception as e:
            await session.rollback()
            log_with_context(
                logger, "error",
                f"Failed to scan vector table {table_name} for documents: {e}",
                context={"crew_id": str(crew.id), "operation": "discover_documents"},
                client_id=client_id,
            )

    if created:
        logger.info(f"Discovered {created} knowledge base documents for client {client_id}")
    return created
