"""
Table name generation and validation for per-crew tables.

Format: __{client_code}_{crew_type}_{table_type}_{sequence}
Examples:
- "__acme_001_support_vector_001"
- "__acme_001_support_histories_001"
- "__techstart_001_support_vector_002" (second support crew)

Every generated name goes through sanitize_table_name before it is used in DDL,
since table names cannot be bound as parameters.
"""
from typing import Union
import logging
import re

from sqlalchemy import and_, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.database.models import Crews
from autocrew_core.schemas.crew_schemas import CrewConfig, CrewType, enum_value

logger = logging.getLogger(__name__)

# PostgreSQL NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63

TABLE_TYPES = ("vector", "histories")

SAFE_NAME_PATTERN = re.compile(r"^[a-z0-9_]+$")
CREW_TABLE_PATTERN = re.compile(
    r"^__[a-z0-9]+(?:_[a-z0-9]+)*_(support|leadgen)_(vector|histories)_[0-9]{3}$"
)
SEQUENCE_SUFFIX = re.compile(r"_(\d+)$")

_SHORT_NAMES = {
    CrewType.CUSTOMER_SUPPORT.value: "support",
    CrewType.LEAD_GENERATION.value: "leadgen",
}


class TableNameError(ValueError):
    """Raised when a crew table name fails validation."""


def normalize_client_code(client_code: str) -> str:
    """Lowercase and swap hyphens for underscores: "ACME-001" -> "acme_001"."""
    return client_code.lower().replace("-", "_")


def get_crew_type_short_name(crew_type: Union[CrewType, str]) -> str:
    return _SHORT_NAMES.get(enum_value(crew_type), "crew")


def sanitize_table_name(table_name: str) -> str:
    """
    Validate a crew table name and return it unchanged.

    Raises:
        TableNameError: on the first failed check (length, prefix, characters, format)
    """
    if len(table_name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        raise TableNameError(
            f"Table name exceeds PostgreSQL limit of {MAX_IDENTIFIER_LENGTH} characters: {table_name}"
        )

    if not table_name.startswith("__"):
        raise TableNameError(
            f"Invalid table name: {table_name}. Must start with __ followed by the client code."
        )

    if not SAFE_NAME_PATTERN.fullmatch(table_name):
        raise TableNameError(
            f"Invalid table name format: {table_name}. "
            "Only lowercase letters, numbers, and underscores are allowed."
        )

    if not CREW_TABLE_PATTERN.fullmatch(table_name):
        raise TableNameError(
            f"Table name doesn't match expected format: {table_name}. "
            "Expected: __{client_code}_{crew_type}_{table_type}_{sequence}"
        )

    return table_name


def build_crew_table_name(
    client_code: str,
    crew_type: Union[CrewType, str],
    table_type: str,
    sequence: int,
) -> str:
    """Compose and validate a crew table name for a known sequence number."""
    if table_type not in TABLE_TYPES:
        raise TableNameError(f"Unknown table type: {table_type}")
    name = (
        f"__{normalize_client_code(client_code)}_{get_crew_type_short_name(crew_type)}"
        f"_{table_type}_{sequence:03d}"
    )
    return sanitize_table_name(name)


async def generate_crew_table_name(
    session: AsyncSession,
    client_code: str,
    crew_type: Union[CrewType, str],
    table_type: str,
) -> str:
    """
    Generate the next table name for a client's crew of the given type.

    The sequence is one more than the highest sequence found in the configs of
    the client's existing crews of that type. Concurrent provisioning for the
    same client can compute the same name; CREATE TABLE then fails and the
    caller's rollback applies.
    """
    result = await session.execute(
        select(Crews.config).where(
            and_(Crews.client_id == client_code, Crews.type == enum_value(crew_type))
        )
    )

    highest = 0
    for raw_config in result.scalars().all():
        config = CrewConfig.from_raw(raw_config)
        existing = config.vector_table_name if table_type == "vector" else config.histories_table_name
        if not existing:
            continue
        match = SEQUENCE_SUFFIX.search(existing)
        if match:
            highest = max(highest, int(match.group(1)))

    return build_crew_table_name(client_code, crew_type, table_type, highest + 1)


async def table_exists(session: AsyncSession, table_name: str) -> bool:
    result = await session.execute(
        text(
            "SELECT EXISTS ("
            " SELECT FROM information_schema.tables"
            " WHERE table_schema = 'public' AND table_name = :table_name"
            ")"
        ),
        {"table_name": table_name},
    )
    return bool(result.scalar())
