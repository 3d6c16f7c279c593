"""
Knowledge base upload orchestration.

validate -> create metadata (processing) -> webhook -> indexed | error | rolled back

Outcomes carry the HTTP status the caller should answer with:
- 200 processed and indexed
- 400 invalid file or crew without a knowledge base
- 404 crew not found
- 408 webhook timeout (document kept, marked error)
- webhook's own status when it reports a failure (document kept, marked error)
- 500 anything else (document rolled back)
"""
from typing import Any, Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.database.models import Crews
from autocrew_core.schemas.crew_schemas import CrewRecord, CrewType
from autocrew_core.schemas.knowledge_base_schemas import (
    DocumentContext,
    DocumentMetadataParams,
    DocumentUpload,
    UploadOutcome,
)
from autocrew_core.services.knowledge_base_service import (
    create_document_metadata,
    mark_document_as_error,
    rollback_document,
    update_document_and_crew,
)
from autocrew_core.utils.file_validator import validate_file
from autocrew_core.utils.logging_config import log_with_context
from autocrew_core.utils.webhook_client import (
    TIMEOUT_MESSAGE,
    DocumentWebhookClient,
    WebhookTimeoutError,
    get_webhook_client,
)

logger = logging.getLogger(__name__)

KB_UNAVAILABLE = "Knowledge base is only available for customer support crews"
DEFAULT_WEBHOOK_ERROR = "Failed to process document"


class DocumentUploadService:
    """Runs a knowledge base upload against one session and webhook client."""

    def __init__(self, session: AsyncSession, webhook_client: Optional[DocumentWebhookClient] = None):
        self.session = session
        self.webhook_client = webhook_client or get_webhook_client()

    async def upload_to_crew(self, crew_id: UUID, upload: DocumentUpload, user_id: str = "unknown") -> UploadOutcome:
        """Load the crew and upload to it."""
        result = await self.session.execute(select(Crews).where(Crews.id == crew_id).limit(1))
        crew = result.scalars().first()
        if crew is None:
            return UploadOutcome(success=False, status_code=404, error="Crew not found")
        return await self.upload_document(crew, upload, user_id)

    async def upload_document(self, crew: Any, upload: DocumentUpload, user_id: str = "unknown") -> UploadOutcome:
        validation = validate_file(upload.filename, upload.content_type, upload.size)
        if not validation.valid:
            return UploadOutcome(success=False, status_code=400, error=validation.error)

        if not isinstance(crew, CrewRecord):
            crew = CrewRecord.model_validate(crew)

        if crew.type != CrewType.CUSTOMER_SUPPORT:
            return UploadOutcome(success=False, status_code=400, error=KB_UNAVAILABLE)

        context = DocumentContext(user_id=user_id, filename=upload.filename, crew_id=str(crew.id))
        doc_id: Optional[str] = None

        try:
            doc_id = str(uuid4())
            await create_document_metadata(
                self.session,
                DocumentMetadataParams(
                    doc_id=doc_id,
                    client_id=crew.client_id,
                    crew_id=str(crew.id),
                    filename=upload.filename,
                    file_type=upload.content_type,
                    file_size=upload.size,
                ),
            )

            try:
                response = await self.webhook_client.upload_document(crew.crew_code, doc_id, upload)
            except WebhookTimeoutError:
                await mark_document_as_error(self.session, doc_id, TIMEOUT_MESSAGE, context)
                return UploadOutcome(success=False, status_code=408, error=TIMEOUT_MESSAGE)

            if response.is_error:
                message = response.message or DEFAULT_WEBHOOK_ERROR
                status_code = response.status_code or response.http_status
                await mark_document_as_error(self.session, doc_id, message, context)
                return UploadOutcome(success=False, status_code=status_code, error=message)

            chunk_count = response.chunk_count
            await update_document_and_crew(
                self.session, doc_id, crew.id, chunk_count, crew.config, context,
            )

            log_with_context(
                logger, "info", "Document and crew updated successfully",
                context={"operation": "upload_document", "doc_id": doc_id, "chunk_count": chunk_count, "crew_id": str(crew.id)},
                user_id=user_id,
            )

            return UploadOutcome(
                success=True,
                status_code=200,
                data={
                    "docId": doc_id,
                    "filename": upload.filename,
                    "chunkCount": chunk_count,
                    "vectorTable": response.metadata.vector_table if response.metadata else None,
                    "status": response.document.status if response.document else None,
                    "embeddingsModel": response.document.embeddings_model if response.document else None,
                },
                message="Document uploaded and processed successfully",
            )

        except Exception as e:
            logger.error(f"Document upload failed for crew {crew.crew_code}: {e}")

            if doc_id:
                try:
                    await rollback_document(self.session, doc_id, crew.config.vector_table_name, context)
                except Exception:
                    # already logged as critical by rollback_document
                    pass

            return UploadOutcome(
                success=False,
                status_code=500,
                error="Failed to upload document",
                details=str(e),
            )
