"""
Crew provisioning and deprovisioning.

provision_crew runs as a saga:
1. generate the crew code and insert the crew record (committed)
2. customer_support only: generate table names, create the vector and
   histories tables, write their names into the crew config (committed)

If step 2 fails, the compensating actions drop whatever tables were created and
delete the crew record, so no crew survives without its backing tables.
"""
from typing import List, Optional
from uuid import UUID
import logging
import time

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.crews.code_generator import generate_crew_code
from autocrew_core.crews.table_creator import create_histories_table, create_vector_table, drop_table
from autocrew_core.crews.table_generator import generate_crew_table_name
from autocrew_core.database.models import Crews
from autocrew_core.schemas.crew_schemas import (
    CrewConfig,
    CrewRecord,
    CrewType,
    DeprovisionCrewResult,
    ProvisionCrewInput,
    ProvisionCrewResult,
    TablesCreated,
    enum_value,
)
from autocrew_core.utils.logging_config import log_with_context

logger = logging.getLogger(__name__)


class CrewNotFoundError(LookupError):
    """Raised when a crew id does not exist."""


class CrewProvisioningError(RuntimeError):
    """Raised when provisioning or deprovisioning cannot complete."""


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def provision_crew(session: AsyncSession, crew_input: ProvisionCrewInput) -> ProvisionCrewResult:
    """
    Provision a new crew and, for customer support crews, its backing tables.

    Raises:
        CrewProvisioningError: if any step fails; compensation has already run
    """
    start = time.monotonic()
    client_id = crew_input.client_id
    crew_type = enum_value(crew_input.type)
    context = {"operation": "provision_crew", "name": crew_input.name, "type": crew_type}

    log_with_context(logger, "info", "Crew provisioning started", context=context, client_id=client_id)

    crew_id: Optional[UUID] = None
    created_tables: List[str] = []
    tables = TablesCreated()

    try:
        crew_code = await generate_crew_code(session, client_id, crew_input.type)
        context["crew_code"] = crew_code

        config = CrewConfig()
        result = await session.execute(
            insert(Crews)
            .values(
                name=crew_input.name,
                client_id=client_id,
                crew_code=crew_code,
                type=crew_type,
                config=config.to_storage(),
                webhook_url=crew_input.webhook_url,
                status=enum_value(crew_input.status),
            )
            .returning(Crews)
        )
        crew = result.scalar_one()
        crew_id = crew.id
        await session.commit()
        context["crew_id"] = str(crew_id)
        log_with_context(logger, "info", f"Crew record inserted: {crew_code}", context=context, client_id=client_id)

        if crew_input.type == CrewType.CUSTOMER_SUPPORT:
            vector_table = await generate_crew_table_name(session, client_id, crew_input.type, "vector")
            histories_table = await generate_crew_table_name(session, client_id, crew_input.type, "histories")

            created_tables.append(vector_table)
            await create_vector_table(session, vector_table)
            created_tables.append(histories_table)
            await create_histories_table(session, histories_table)

            config.vector_table_name = vector_table
            config.histories_table_name = histories_table
            result = await session.execute(
                update(Crews)
                .where(Crews.id == crew_id)
                .values(config=config.to_storage(), updated_at=func.now())
                .returning(Crews)
            )
            crew = result.scalar_one()
            await session.commit()
            tables = TablesCreated(vector_table=vector_table, histories_table=histories_table)
        else:
            log_with_context(
                logger, "info",
                f"Skipping table creation for {crew_type} crew",
                context=context, client_id=client_id,
            )
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "error",
            f"Crew provisioning failed: {e}",
            context={**context, "tables": created_tables, "duration_ms": _elapsed_ms(start)},
            client_id=client_id,
        )
        await _compensate_provisioning(session, crew_id, created_tables, context, client_id)
        raise CrewProvisioningError(f"Failed to provision crew: {e}") from e

    log_with_context(
        logger, "info",
        f"Crew provisioned successfully: {crew_code}",
        context={**context, "tables_created": tables.count, "duration_ms": _elapsed_ms(start)},
        client_id=client_id,
    )
    return ProvisionCrewResult(crew=CrewRecord.model_validate(crew), tables_created=tables)


async def _compensate_provisioning(
    session: AsyncSession,
    crew_id: Optional[UUID],
    created_tables: List[str],
    context: dict,
    client_id: str,
) -> None:
    rollback_context = {**context, "operation": "provision_crew_rollback"}

    for table_name in reversed(created_tables):
        log_with_context(
            logger, "info", f"Rolling back: dropping table {table_name}",
            context=rollback_context, client_id=client_id,
        )
        await drop_table(session, table_name)

    if crew_id is None:
        return

    try:
        await session.execute(delete(Crews).where(Crews.id == crew_id))
        await session.commit()
        log_with_context(
            logger, "info", f"Rolling back: deleted crew record {crew_id}",
            context=rollback_context, client_id=client_id,
        )
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "critical",
            f"Failed to delete crew record {crew_id} after provisioning failure, manual cleanup required: {e}",
            context=rollback_context, client_id=client_id,
        )


async def deprovision_crew(session: AsyncSession, crew_id: UUID) -> DeprovisionCrewResult:
    """
    Drop a crew's backing tables and delete its record.

    Table drops that fail are reported in the result, not raised.

    Raises:
        CrewNotFoundError: no crew with this id
        CrewProvisioningError: the crew record could not be deleted
    """
    start = time.monotonic()
    context = {"operation": "deprovision_crew", "crew_id": str(crew_id)}
    log_with_context(logger, "info", "Crew deprovisioning started", context=context)

    try:
        result = await session.execute(select(Crews).where(Crews.id == crew_id).limit(1))
        crew = result.scalars().first()
    except Exception as e:
        await session.rollback()
        log_with_context(logger, "error", f"Crew lookup failed: {e}", context=context)
        raise

    if crew is None:
        log_with_context(logger, "warning", f"Crew not found for deprovisioning: {crew_id}", context=context)
        raise CrewNotFoundError(f"Crew not found: {crew_id}")

    crew_code = crew.crew_code
    client_id = crew.client_id
    context["crew_code"] = crew_code
    config = CrewConfig.from_raw(crew.config)

    dropped: List[str] = []
    failed: List[str] = []
    for table_name in config.table_names:
        if await drop_table(session, table_name):
            dropped.append(table_name)
        else:
            failed.append(table_name)

    try:
        await session.execute(delete(Crews).where(Crews.id == crew_id))
        await session.commit()
    except Exception as e:
        await session.rollback()
        log_with_context(
            logger, "error", f"Crew deprovisioning failed: {e}",
            context={**context, "duration_ms": _elapsed_ms(start)}, client_id=client_id,
        )
        raise CrewProvisioningError(f"Failed to deprovision crew: {e}") from e

    log_with_context(
        logger, "info",
        f"Crew deprovisioned successfully: {crew_code}",
        context={**context, "dropped_tables": dropped, "failed_tables": failed, "duration_ms": _elapsed_ms(start)},
        client_id=client_id,
    )
    return DeprovisionCrewResult(
        crew_id=crew.id,
        crew_code=crew_code,
        client_id=client_id,
        dropped_tables=dropped,
        failed_tables=failed,
    )
