"""
Client teardown.

Deleting a client deprovisions each of its crews first so their per-crew tables
are dropped, then removes the client's documents, conversations and record.
"""
from uuid import UUID
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.crews.provisioning import deprovision_crew
from autocrew_core.database.models import Clients, Conversations, Crews, KnowledgeBaseDocuments
from autocrew_core.schemas.client_schemas import ClientDeletionResult
from autocrew_core.utils.logging_config import log_with_context

logger = logging.getLogger(__name__)


class ClientNotFoundError(LookupError):
    """Raised when a client id does not exist."""


async def delete_client(session: AsyncSession, client_id: UUID) -> ClientDeletionResult:
    """
    Delete a client and everything it owns.

    Crews are deprovisioned one at a time; a crew that fails is counted in
    failed_crew_deletions and the teardown carries on. Its record goes with the
    client (foreign key cascade) but its tables may be left for
    cleanup_orphaned_tables.

    Raises:
        ClientNotFoundError: no client with this id
    """
    result = await session.execute(select(Clients).where(Clients.id == client_id).limit(1))
    client = result.scalars().first()
    if client is None:
        raise ClientNotFoundError(f"Client not found: {client_id}")

    client_code = client.client_code
    context = {"operation": "delete_client", "client_uuid": str(client_id)}
    log_with_context(logger, "info", "Client deletion started", context=context, client_id=client_code)

    result = await session.execute(select(Crews.id).where(Crews.client_id == client_code))
    crew_ids = list(result.scalars().all())

    deleted_crews = 0
    failed_crews = 0
    for crew_id in crew_ids:
        try:
            await deprovision_crew(session, crew_id)
            deleted_crews += 1
        except Exception as e:
            # Earlier crews are already committed; clear any aborted transaction
            await session.rollback()
            failed_crews += 1
            log_with_context(
                logger, "error", f"Failed to deprovision crew {crew_id}: {e}",
                context={**context, "crew_id": str(crew_id)}, client_id=client_code,
            )

    try:
        result = await session.execute(
            delete(KnowledgeBaseDocuments).where(KnowledgeBaseDocuments.client_id == client_code)
        )
        deleted_documents = result.rowcount or 0

        result = await session.execute(
            delete(Conversations).where(Conversations.client_id == client_code)
        )
        deleted_conversations = result.rowcount or 0

        await session.execute(delete(Clients).where(Clients.id == client_id))
        await session.commit()
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "error", f"Failed to delete client: {e}", context=context, client_id=client_code,
        )
        raise

    if failed_crews:
        log_with_context(
            logger, "warning",
            f"Client deleted with {failed_crews} crew deletion failure(s); run cleanup_orphaned_tables",
            context=context, client_id=client_code,
        )

    log_with_context(
        logger, "info",
        f"Client deleted: {deleted_crews} crews, {deleted_conversations} conversations, {deleted_documents} documents",
        context=context, client_id=client_code,
    )
    return ClientDeletionResult(
        client_id=client_id,
        client_code=client_code,
        deleted_crews=deleted_crews,
        failed_crew_deletions=failed_crews,
        deleted_conversations=deleted_conversations,
        deleted_documents=deleted_documents,
    )
