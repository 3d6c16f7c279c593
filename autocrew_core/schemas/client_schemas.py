"""
Client teardown schemas for AutoCrew services
"""

from uuid import UUID

from pydantic import BaseModel, Field


class ClientDeletionResult(BaseModel):
    """Outcome of deleting a client and everything it owns"""

    client_id: UUID
    client_code: str
    deleted_crews: int = Field(0, description="Crews deprovisioned successfully")
    failed_crew_deletions: int = Field(0, description="Crews whose deprovisioning raised")
    deleted_conversations: int = 0
    deleted_documents: int = 0
