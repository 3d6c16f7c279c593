"""Services consumed by the AutoCrew HTTP layer."""

from .knowledge_base_service import (
    DocumentUpdateError,
    create_document_metadata,
    mark_document_as_error,
    rollback_document,
    update_document_and_crew,
)
from .document_upload_service import DocumentUploadService
from .client_service import ClientNotFoundError, delete_client

__all__ = [
    "DocumentUpdateError",
    "create_document_metadata",
    "mark_document_as_error",
    "rollback_document",
    "update_document_and_crew",
    "DocumentUploadService",
    "ClientNotFoundError",
    "delete_client",
]
