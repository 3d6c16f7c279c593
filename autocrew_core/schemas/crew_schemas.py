"""
Crew provisioning schemas for AutoCrew services
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CrewType(str, Enum):
    CUSTOMER_SUPPORT = "customer_support"
    LEAD_GENERATION = "lead_generation"


class CrewStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


def enum_value(value: Union[Enum, str, None]) -> Optional[str]:
    """Plain string value for an enum member or string, as bound into SQL."""
    if isinstance(value, Enum):
        return value.value
    return value


class ActivationState(BaseModel):
    """Activation wizard state stored in crew config.

    activation_ready is derived: it is recomputed from the two step flags on every
    validation, so a stored value can never disagree with them.
    """

    model_config = ConfigDict(populate_by_name=True)

    documents_uploaded: bool = Field(False, alias="documentsUploaded")
    support_configured: bool = Field(False, alias="supportConfigured")
    activation_ready: bool = Field(False, alias="activationReady")

    @model_validator(mode="after")
    def _derive_activation_ready(self) -> "ActivationState":
        self.activation_ready = self.documents_uploaded and self.support_configured
        return self


class CrewConfig(BaseModel):
    """Typed view over the crews.config JSONB column.

    Persisted with camelCase keys. Keys this model does not know about (widget
    settings and the like) are kept and written back untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    vector_table_name: Optional[str] = Field(None, alias="vectorTableName")
    histories_table_name: Optional[str] = Field(None, alias="historiesTableName")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Support contact and widget metadata")
    activation_state: Optional[ActivationState] = Field(None, alias="activationState")

    @classmethod
    def from_raw(cls, raw: Any) -> "CrewConfig":
        """Build a config from whatever the database returned (dict, None, or a CrewConfig)."""
        if isinstance(raw, cls):
            return raw
        if not raw:
            return cls()
        return cls.model_validate(raw)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def support_configured(self) -> bool:
        return bool((self.metadata or {}).get("support_email"))

    @property
    def documents_uploaded(self) -> bool:
        return bool(self.activation_state and self.activation_state.documents_uploaded)

    @property
    def table_names(self) -> List[str]:
        return [name for name in (self.vector_table_name, self.histories_table_name) if name]

    def with_documents_uploaded(self) -> "CrewConfig":
        """Return a copy whose activation state records the first successful upload."""
        updated = self.model_copy(deep=True)
        updated.activation_state = ActivationState(
            documents_uploaded=True,
            support_configured=self.support_configured or bool(
                self.activation_state and self.activation_state.support_configured
            ),
        )
        return updated


class ProvisionCrewInput(BaseModel):
    """Input for provisioning a new crew"""

    name: str = Field(..., min_length=1, description="Display name of the crew")
    client_id: str = Field(..., min_length=1, description="Owning client's client code, e.g. ACME-001")
    type: CrewType = Field(..., description="Crew type")
    webhook_url: str = Field(..., description="n8n webhook URL that runs the crew")
    status: CrewStatus = Field(CrewStatus.INACTIVE, description="Initial crew status")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Support Bot",
                "client_id": "ACME-001",
                "type": "customer_support",
                "webhook_url": "https://n8n.example.com/webhook/acme-support",
            }
        }
    )


class CrewRecord(BaseModel):
    """Crew row as returned to callers"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    client_id: str
    crew_code: str
    type: CrewType
    config: CrewConfig = Field(default_factory=CrewConfig)
    webhook_url: str
    status: CrewStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("config", mode="before")
    @classmethod
    def _parse_config(cls, value: Any) -> CrewConfig:
        return CrewConfig.from_raw(value)


class TablesCreated(BaseModel):
    vector_table: Optional[str] = None
    histories_table: Optional[str] = None

    @property
    def count(self) -> int:
        return sum(1 for name in (self.vector_table, self.histories_table) if name)


class ProvisionCrewResult(BaseModel):
    """Result of crew provisioning"""

    crew: CrewRecord
    tables_created: TablesCreated = Field(default_factory=TablesCreated)

    @property
    def table_count(self) -> int:
        return self.tables_created.count


class DeprovisionCrewResult(BaseModel):
    """Result of crew deprovisioning"""

    crew_id: UUID
    crew_code: str
    client_id: str
    dropped_tables: List[str] = Field(default_factory=list)
    failed_tables: List[str] = Field(default_factory=list)
