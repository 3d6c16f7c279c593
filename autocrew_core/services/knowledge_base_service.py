"""
Knowledge base document lifecycle.

An upload moves a document through:
    processing -> indexed   (update_document_and_crew)
    processing -> error     (mark_document_as_error)
    processing -> deleted   (rollback_document)

The metadata row is created before the processing webhook is called, so an
upload that dies midway leaves a row behind instead of silently losing the file.
"""
from typing import Any, Optional
import logging

from sqlalchemy import delete, func, insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.database.knowledge_base import delete_document
from autocrew_core.database.models import Crews, KnowledgeBaseDocuments
from autocrew_core.database.transaction_helpers import with_transaction
from autocrew_core.schemas.crew_schemas import CrewConfig
from autocrew_core.schemas.knowledge_base_schemas import DocumentContext, DocumentMetadataParams, DocumentStatus
from autocrew_core.utils.logging_config import log_with_context

logger = logging.getLogger(__name__)


class DocumentUpdateError(RuntimeError):
    """Raised when a document and its crew could not be updated together."""


async def create_document_metadata(session: AsyncSession, params: DocumentMetadataParams) -> None:
    """Insert the initial metadata row (status processing, no chunks) and commit."""
    try:
        await session.execute(
            insert(KnowledgeBaseDocuments).values(
                doc_id=params.doc_id,
                client_id=params.client_id,
                crew_id=params.crew_id,
                filename=params.filename,
                file_type=params.file_type,
                file_size=params.file_size,
                chunk_count=0,
                status=DocumentStatus.PROCESSING.value,
            )
        )
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Failed to create document metadata for {params.doc_id}: {e}")
        raise

    log_with_context(
        logger, "info", "Document metadata created",
        context={
            "operation": "create_document_metadata",
            "doc_id": params.doc_id,
            "filename": params.filename,
            "file_size": params.file_size,
        },
        client_id=params.client_id,
    )


async def update_document_and_crew(
    session: AsyncSession,
    doc_id: str,
    crew_id: Any,
    chunk_count: int,
    current_config: Any,
    context: Optional[DocumentContext] = None,
) -> bool:
    """
    Mark a document indexed and, on the crew's first successful upload, record
    that documents are uploaded in the crew's activation state.

    Both writes commit together or not at all.

    Returns:
        True if the crew config was updated

    Raises:
        DocumentUpdateError: the transaction failed after retries
    """
    context = context or DocumentContext()
    config = CrewConfig.from_raw(current_config)

    async def work(tx: AsyncSession) -> bool:
        await tx.execute(
            update(KnowledgeBaseDocuments)
            .where(KnowledgeBaseDocuments.doc_id == doc_id)
            .values(
                status=DocumentStatus.INDEXED.value,
                chunk_count=chunk_count,
                error_message=None,
                updated_at=func.now(),
            )
        )

        if config.documents_uploaded:
            return False

        await tx.execute(
            update(Crews)
            .where(Crews.id == crew_id)
            .values(config=config.with_documents_uploaded().to_storage(), updated_at=func.now())
        )
        return True

    result = await with_transaction(
        session,
        work,
        operation="update_document_and_crew",
        context={
            "doc_id": doc_id,
            "crew_id": str(crew_id),
            "chunk_count": chunk_count,
            "user_id": context.user_id,
            "filename": context.filename,
        },
    )

    if not result.success:
        raise DocumentUpdateError(f"Failed to update document and crew: {result.error}") from result.error

    return result.data


async def mark_document_as_error(
    session: AsyncSession,
    doc_id: str,
    error_message: str,
    context: Optional[DocumentContext] = None,
) -> bool:
    """
    Set a document's status to error, recording why. Best effort, no retry.

    Returns:
        False if the update itself failed (the failure is logged, not raised)
    """
    context = context or DocumentContext()
    log_context = {
        "operation": "mark_document_as_error",
        "doc_id": doc_id,
        "error_message": error_message,
        "filename": context.filename,
    }

    try:
        await session.execute(
            update(KnowledgeBaseDocuments)
            .where(KnowledgeBaseDocuments.doc_id == doc_id)
            .values(
                status=DocumentStatus.ERROR.value,
                error_message=error_message,
                updated_at=func.now(),
            )
        )
        await session.commit()
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "error", f"Failed to mark document as error: {e}",
            context=log_context, user_id=context.user_id,
        )
        return False

    log_with_context(
        logger, "warning", "Document marked as error",
        context=log_context, user_id=context.user_id,
    )
    return True


async def rollback_document(
    session: AsyncSession,
    doc_id: str,
    vector_table_name: Optional[str],
    context: Optional[DocumentContext] = None,
) -> None:
    """
    Remove every trace of a failed upload: its vector chunks when the table is
    known, and its metadata row.

    Raises:
        The underlying error after logging it as CRITICAL; manual cleanup is required
    """
    context = context or DocumentContext()
    log_context = {
        "operation": "rollback_document",
        "doc_id": doc_id,
        "vector_table_name": vector_table_name,
        "filename": context.filename,
        "crew_id": context.crew_id,
    }

    try:
        if vector_table_name:
            removed = await delete_document(session, doc_id, vector_table_name)
            await session.commit()
            log_with_context(
                logger, "info", f"Complete rollback successful, removed {removed} chunks",
                context=log_context, user_id=context.user_id,
            )
        else:
            await session.execute(
                delete(KnowledgeBaseDocuments).where(KnowledgeBaseDocuments.doc_id == doc_id)
            )
            await session.commit()
            log_with_context(
                logger, "info", "Metadata rollback successful",
                context=log_context, user_id=context.user_id,
            )
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "critical", f"Rollback failed - manual cleanup required: {e}",
            context=log_context, user_id=context.user_id,
        )
        raise
