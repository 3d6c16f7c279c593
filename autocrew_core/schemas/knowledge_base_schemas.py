"""
Knowledge base document schemas for AutoCrew services
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    INDEXED = "indexed"
    ERROR = "error"


class DocumentMetadataParams(BaseModel):
    """Initial metadata written before the document is sent for processing"""

    doc_id: str = Field(..., description="Caller-generated UUID, correlates chunks with metadata")
    client_id: str = Field(..., description="Owning client's client code")
    crew_id: str = Field(..., description="Crew the document belongs to")
    filename: str
    file_type: str
    file_size: int


class DocumentContext(BaseModel):
    """Who and what an operation concerns, carried into log records"""

    user_id: str = "unknown"
    filename: str = "unknown"
    crew_id: Optional[str] = None


class DocumentUpload(BaseModel):
    """A file received from the HTTP layer"""

    filename: str
    content_type: str = ""
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class WebhookDocument(BaseModel):
    status: Optional[str] = None
    chunk_count: int = 0
    embeddings_model: Optional[str] = None


class WebhookMetadata(BaseModel):
    crew_code: Optional[str] = None
    client_id: Optional[str] = None
    vector_table: Optional[str] = None
    doc_id: Optional[str] = None
    timestamp: Optional[str] = None


class WebhookUploadResponse(BaseModel):
    """Body returned by the document processing webhook.

    http_status is not part of the body; the client fills it in from the response.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str = "success"
    message: Optional[str] = None
    status_code: Optional[int] = Field(None, alias="statusCode")
    metadata: Optional[WebhookMetadata] = None
    document: Optional[WebhookDocument] = None
    http_status: int = 200

    @property
    def ok(self) -> bool:
        return 200 <= self.http_status < 300

    @property
    def is_error(self) -> bool:
        return self.status == "error" or not self.ok

    @property
    def chunk_count(self) -> int:
        return self.document.chunk_count if self.document else 0


class UploadOutcome(BaseModel):
    """Structured result of an upload, mapped to an HTTP response by the caller"""

    success: bool
    status_code: int
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    details: Optional[str] = None
    message: Optional[str] = None


class VectorChunk(BaseModel):
    id: Any
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
