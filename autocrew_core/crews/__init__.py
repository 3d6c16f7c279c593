"""Crew provisioning: per-crew table naming, DDL, codes and lifecycle."""

from .table_generator import (
    CREW_TABLE_PATTERN,
    TableNameError,
    build_crew_table_name,
    generate_crew_table_name,
    get_crew_type_short_name,
    normalize_client_code,
    sanitize_table_name,
    table_exists,
)
from .table_creator import create_histories_table, create_vector_table, drop_table, drop_tables
from .code_generator import extract_prefix, generate_client_code, generate_crew_code
from .provisioning import CrewNotFoundError, CrewProvisioningError, deprovision_crew, provision_crew

__all__ = [
    "CREW_TABLE_PATTERN",
    "TableNameError",
    "build_crew_table_name",
    "generate_crew_table_name",
    "get_crew_type_short_name",
    "normalize_client_code",
    "sanitize_table_name",
    "table_exists",
    "create_histories_table",
    "create_vector_table",
    "drop_table",
    "drop_tables",
    "extract_prefix",
    "generate_client_code",
    "generate_crew_code",
    "CrewNotFoundError",
    "CrewProvisioningError",
    "deprovision_crew",
    "provision_crew",
]
