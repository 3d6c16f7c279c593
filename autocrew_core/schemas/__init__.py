"""
Shared Pydantic schemas for AutoCrew services
"""

from .crew_schemas import (
    ActivationState,
    CrewConfig,
    CrewRecord,
    CrewStatus,
    CrewType,
    DeprovisionCrewResult,
    ProvisionCrewInput,
    ProvisionCrewResult,
    TablesCreated,
)
from .knowledge_base_schemas import (
    DocumentContext,
    DocumentMetadataParams,
    DocumentStatus,
    DocumentUpload,
    UploadOutcome,
    VectorChunk,
    WebhookUploadResponse,
)
from .client_schemas import ClientDeletionResult

__all__ = [
    "ActivationState",
    "CrewConfig",
    "CrewRecord",
    "CrewStatus",
    "CrewType",
    "DeprovisionCrewResult",
    "ProvisionCrewInput",
    "ProvisionCrewResult",
    "TablesCreated",
    "DocumentContext",
    "DocumentMetadataParams",
    "DocumentStatus",
    "DocumentUpload",
    "UploadOutcome",
    "VectorChunk",
    "WebhookUploadResponse",
    "ClientDeletionResult",
]
