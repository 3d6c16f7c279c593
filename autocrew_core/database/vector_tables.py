"""
SQLAlchemy Core handle for per-crew vector tables.

The tables are created by DDL in autocrew_core.crews.table_creator; these
definitions only mirror their columns so DML can be built with the expression
language instead of string SQL.
"""
from sqlalchemy import Column, DateTime, MetaData, Table, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from pgvector.sqlalchemy import Vector

from autocrew_core.config import shared_settings

_metadata = MetaData()


def get_vector_table(name: str, dimension: int = None) -> Table:
    """Return a Table for a crew vector table. The name must already be validated."""
    existing = _metadata.tables.get(name)
    if existing is not None:
        return existing
    return Table(
        name,
        _metadata,
        Column("id", UUID(as_uuid=True), primary_key=True),
        Column("content", Text, nullable=False),
        Column("metadata", JSONB),
        Column("embedding", Vector(dimension or shared_settings.VECTOR_EMBEDDING_DIMENSION)),
        Column("created_at", DateTime(timezone=True)),
    )
