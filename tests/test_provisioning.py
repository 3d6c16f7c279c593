"""
Crew provisioning and deprovisioning tests
"""

from uuid import uuid4

import pytest

from autocrew_core.crews.provisioning import (
    CrewNotFoundError,
    CrewProvisioningError,
    deprovision_crew,
    provision_crew,
)
from autocrew_core.schemas.crew_schemas import CrewStatus, CrewType, ProvisionCrewInput
from tests.conftest import make_crew_row
from tests.fakes import FakeResult, FakeSession


VECTOR = "__acme_001_support_vector_001"
HISTORIES = "__acme_001_support_histories_001"


def provisioning_responder(crew_row, fail_on=None):
    """Answer provisioning queries for a client with no existing crews."""

    def respond(sql, params):
        if fail_on and fail_on in sql:
            return RuntimeError(f"failed: {fail_on}")
        if sql.startswith("SELECT"):
            return FakeResult([])
        if sql.startswith("INSERT INTO crews"):
            return FakeResult([crew_row])
        if sql.startswith("UPDATE crews"):
            crew_row.config = params["config"]
            return FakeResult([crew_row])
        return None

    return respond


def support_input(**overrides):
    values = dict(
        name="Support Bot",
        client_id="ACME-001",
        type=CrewType.CUSTOMER_SUPPORT,
        webhook_url="https://n8n.example.com/webhook/acme-support",
    )
    values.update(overrides)
    return ProvisionCrewInput(**values)


class TestProvisionCrewInput:

    def test_status_defaults_to_inactive(self):
        assert support_input().status == CrewStatus.INACTIVE

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            support_input(type="sales")


class TestProvisionCrew:

    @pytest.mark.asyncio
    async def test_support_crew_gets_both_tables(self):
        crew_row = make_crew_row()
        session = FakeSession(responder=provisioning_responder(crew_row))

        result = await provision_crew(session, support_input())

        assert result.tables_created.vector_table == VECTOR
        assert result.tables_created.histories_table == HISTORIES
        assert result.table_count == 2
        assert result.crew.crew_code == "ACME-001-SUP-001"
        assert result.crew.config.vector_table_name == VECTOR
        assert result.crew.config.histories_table_name == HISTORIES

        assert len(session.statements_containing(f"CREATE TABLE {VECTOR}")) == 1
        assert len(session.statements_containing(f"CREATE TABLE {HISTORIES}")) == 1
        assert session.statements_containing("DROP TABLE") == []
        assert session.commits == 2

    @pytest.mark.asyncio
    async def test_record_inserted_with_generated_code_and_inactive_status(self):
        crew_row = make_crew_row()
        session = FakeSession(responder=provisioning_responder(crew_row))

        await provision_crew(session, support_input())

        insert_index = next(i for i, sql in enumerate(session.sql) if sql.startswith("INSERT INTO crews"))
        params = session.params[insert_index]
        assert params["crew_code"] == "ACME-001-SUP-001"
        assert params["status"] == "inactive"
        assert params["type"] == "customer_support"

    @pytest.mark.asyncio
    async def test_record_inserted_before_tables(self):
        crew_row = make_crew_row()
        session = FakeSession(responder=provisioning_responder(crew_row))

        await provision_crew(session, support_input())

        sql = session.sql
        insert_index = next(i for i, s in enumerate(sql) if s.startswith("INSERT INTO crews"))
        create_index = next(i for i, s in enumerate(sql) if "CREATE TABLE" in s)
        assert insert_index < create_index

    @pytest.mark.asyncio
    async def test_lead_generation_crew_has_no_tables(self):
        crew_row = make_crew_row(type="lead_generation", crew_code="ACME-001-LEAD-001")
        session = FakeSession(responder=provisioning_responder(crew_row))

        result = await provision_crew(session, support_input(type=CrewType.LEAD_GENERATION))

        assert result.table_count == 0
        assert result.tables_created.vector_table is None
        assert session.statements_containing("CREATE TABLE") == []
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_table_failure_compensates(self):
        crew_row = make_crew_row()
        session = FakeSession(
            responder=provisioning_responder(crew_row, fail_on=f"CREATE TABLE {HISTORIES}")
        )

        with pytest.raises(CrewProvisioningError, match="Failed to provision crew"):
            await provision_crew(session, support_input())

        assert session.statements_containing(f'DROP TABLE IF EXISTS "{VECTOR}" CASCADE')
        assert session.statements_containing(f'DROP TABLE IF EXISTS "{HISTORIES}" CASCADE')
        assert len(session.statements_containing("DELETE FROM crews")) == 1
        assert session.rollbacks >= 1

    @pytest.mark.asyncio
    async def test_config_update_failure_deletes_record(self):
        crew_row = make_crew_row()
        session = FakeSession(responder=provisioning_responder(crew_row, fail_on="UPDATE crews"))

        with pytest.raises(CrewProvisioningError):
            await provision_crew(session, support_input())

        assert len(session.statements_containing("DROP TABLE IF EXISTS")) == 2
        assert len(session.statements_containing("DELETE FROM crews")) == 1

    @pytest.mark.asyncio
    async def test_insert_failure_needs_no_compensation(self):
        crew_row = make_crew_row()
        session = FakeSession(responder=provisioning_responder(crew_row, fail_on="INSERT INTO crews"))

        with pytest.raises(CrewProvisioningError) as exc_info:
            await provision_crew(session, support_input())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert session.statements_containing("DELETE FROM crews") == []
        assert session.statements_containing("DROP TABLE") == []

    @pytest.mark.asyncio
    async def test_failed_compensation_logged_as_critical(self, caplog):
        crew_row = make_crew_row()

        def respond(sql, params):
            if sql.startswith("DELETE FROM crews"):
                return RuntimeError("connection lost")
            return provisioning_responder(crew_row, fail_on=f"CREATE TABLE {VECTOR}")(sql, params)

        session = FakeSession(responder=respond)

        with pytest.raises(CrewProvisioningError):
            await provision_crew(session, support_input())

        assert "manual cleanup required" in caplog.text
        assert any(record.levelname == "CRITICAL" for record in caplog.records)


class TestDeprovisionCrew:

    @pytest.mark.asyncio
    async def test_drops_tables_and_deletes_record(self):
        crew_row = make_crew_row(config={"vectorTableName": VECTOR, "historiesTableName": HISTORIES})
        session = FakeSession([FakeResult([crew_row])])

        result = await deprovision_crew(session, crew_row.id)

        assert result.dropped_tables == [VECTOR, HISTORIES]
        assert result.failed_tables == []
        assert result.crew_code == "ACME-001-SUP-001"
        assert len(session.statements_containing("DELETE FROM crews")) == 1
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_table_failures_reported_not_raised(self):
        crew_row = make_crew_row(config={"vectorTableName": VECTOR, "historiesTableName": HISTORIES})
        session = FakeSession(
            [FakeResult([crew_row])],
            responder=lambda sql, params: RuntimeError("busy") if HISTORIES in sql else None,
        )

        result = await deprovision_crew(session, crew_row.id)

        assert result.dropped_tables == [VECTOR]
        assert result.failed_tables == [HISTORIES]
        assert len(session.statements_containing("DELETE FROM crews")) == 1

    @pytest.mark.asyncio
    async def test_lead_generation_crew_without_tables(self):
        crew_row = make_crew_row(type="lead_generation", config={})
        session = FakeSession([FakeResult([crew_row])])

        result = await deprovision_crew(session, crew_row.id)

        assert result.dropped_tables == []
        assert session.statements_containing("DROP TABLE") == []

    @pytest.mark.asyncio
    async def test_missing_crew(self):
        session = FakeSession([FakeResult([])])

        with pytest.raises(CrewNotFoundError):
            await deprovision_crew(session, uuid4())

        assert session.commits == 0

    @pytest.mark.asyncio
    async def test_record_delete_failure(self):
        crew_row = make_crew_row(config={})
        session = FakeSession([FakeResult([crew_row]), RuntimeError("fk violation")])

        with pytest.raises(CrewProvisioningError, match="Failed to deprovision crew"):
            await deprovision_crew(session, crew_row.id)

        assert session.rollbacks == 1

    @pytest.mark.asyncio
    async def test_lookup_failure_rolls_back(self):
        session = FakeSession([RuntimeError("connection reset")], abort_on_error=True)

        with pytest.raises(RuntimeError, match="connection reset"):
            await deprovision_crew(session, uuid4())

        assert session.rollbacks == 1
        assert not session.aborted
        assert session.commits == 0
