"""
Database models for the AutoCrew platform.

Per-crew vector and histories tables are not declared here; their names are
generated at provisioning time. Vector tables are addressed through
autocrew_core.database.vector_tables.
"""
from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Clients(Base):
    __tablename__ = "clients"

    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False, server_default=text('gen_random_uuid()'))
    company_name = Column(Text, nullable=False)
    client_code = Column(String(50), nullable=False, unique=True)
    contact_name = Column(Text)
    contact_email = Column(Text)
    contact_phone = Column(Text)
    plan = Column(String(20), nullable=False, server_default=text("'starter'::character varying"))
    status = Column(String(20), nullable=False, server_default=text("'trial'::character varying"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Crews(Base):
    __tablename__ = "crews"

    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False, server_default=text('gen_random_uuid()'))
    client_id = Column(String(50), ForeignKey("clients.client_code", ondelete="CASCADE"), nullable=False)
    crew_code = Column(String(100), nullable=False, unique=True)
    name = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, server_default=text("'inactive'::character varying"))
    webhook_url = Column(Text, nullable=False)
    config = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("crews_client_id_idx", "client_id"),
    )


class Conversations(Base):
    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False, server_default=text('gen_random_uuid()'))
    client_id = Column(String(50), ForeignKey("clients.client_code", ondelete="CASCADE"), nullable=False)
    crew_id = Column(UUID(as_uuid=True), ForeignKey("crews.id", ondelete="SET NULL"))
    session_id = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, server_default=text("'active'::character varying"))
    message_count = Column(Integer, nullable=False, server_default=text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("conversations_client_id_idx", "client_id"),
        Index("conversations_session_id_idx", "session_id"),
    )


class KnowledgeBaseDocuments(Base):
    __tablename__ = "knowledge_base_documents"

    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False, server_default=text('gen_random_uuid()'))
    doc_id = Column(Text, nullable=False, unique=True)
    client_id = Column(String(50), nullable=False)
    crew_id = Column(UUID(as_uuid=True), ForeignKey("crews.id", ondelete="CASCADE"), nullable=False)
    filename = Column(Text, nullable=False)
    file_type = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    chunk_count = Column(Integer, nullable=False, server_default=text("0"))
    status = Column(String(20), nullable=False, server_default=text("'processing'::character varying"))
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("knowledge_base_documents_client_id_idx", "client_id"),
        Index("knowledge_base_documents_crew_id_idx", "crew_id"),
        Index("knowledge_base_documents_status_idx", "status"),
    )
