"""
Knowledge base upload orchestration tests
"""

from uuid import uuid4

import httpx
import pytest

from autocrew_core.schemas.crew_schemas import CrewRecord
from autocrew_core.schemas.knowledge_base_schemas import DocumentUpload
from autocrew_core.services.document_upload_service import DocumentUploadService
from autocrew_core.utils.webhook_client import DocumentWebhookClient
from tests.conftest import make_crew_row
from tests.fakes import FakeResult, FakeSession


VECTOR = "__acme_001_support_vector_001"

SUCCESS_BODY = {
    "status": "success",
    "message": "Document processed",
    "metadata": {"crew_code": "ACME-001-SUP-001", "vector_table": VECTOR},
    "document": {"status": "indexed", "chunk_count": 12, "embeddings_model": "text-embedding-3-small"},
}


def support_crew(**config_overrides):
    config = {"vectorTableName": VECTOR, "metadata": {"support_email": "help@acme.test"}}
    config.update(config_overrides)
    return CrewRecord.model_validate(make_crew_row(config=config, status="active"))


def text_upload(content=b"hello knowledge base"):
    return DocumentUpload(filename="faq.txt", content_type="text/plain", content=content)


def webhook(handler):
    return DocumentWebhookClient(
        url="https://n8n.example.com/webhook/upload",
        api_key="test-api-key-123",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def document_statuses(session):
    return [p.get("status") for sql, p in zip(session.sql, session.params) if "knowledge_base_documents" in sql]


class TestUploadSuccess:

    @pytest.mark.asyncio
    async def test_processing_then_indexed(self):
        session = FakeSession()
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(200, json=SUCCESS_BODY)))

        outcome = await service.upload_document(support_crew(), text_upload(), user_id="user-1")

        assert outcome.success is True
        assert outcome.status_code == 200
        assert outcome.data["chunkCount"] == 12
        assert outcome.data["vectorTable"] == VECTOR
        assert outcome.data["embeddingsModel"] == "text-embedding-3-small"
        assert outcome.data["filename"] == "faq.txt"
        assert document_statuses(session) == ["processing", "indexed"]

    @pytest.mark.asyncio
    async def test_first_upload_marks_documents_uploaded(self):
        session = FakeSession()
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(200, json=SUCCESS_BODY)))

        await service.upload_document(support_crew(), text_upload())

        crew_updates = [p for sql, p in zip(session.sql, session.params) if sql.startswith("UPDATE crews")]
        assert len(crew_updates) == 1
        assert crew_updates[0]["config"]["activationState"]["documentsUploaded"] is True

    @pytest.mark.asyncio
    async def test_later_upload_does_not_touch_crew(self):
        session = FakeSession()
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(200, json=SUCCESS_BODY)))
        crew = support_crew(activationState={"documentsUploaded": True, "supportConfigured": True})

        await service.upload_document(crew, text_upload())

        assert session.statements_containing("UPDATE crews") == []

    @pytest.mark.asyncio
    async def test_doc_id_sent_to_webhook_matches_metadata(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            seen["api_key"] = request.headers["x-api-key"]
            return httpx.Response(200, json=SUCCESS_BODY)

        session = FakeSession()
        outcome = await DocumentUploadService(session, webhook(handler)).upload_document(support_crew(), text_upload())

        doc_id = outcome.data["docId"]
        assert session.params[0]["doc_id"] == doc_id
        assert doc_id.encode() in seen["body"]
        assert b"ACME-001-SUP-001" in seen["body"]
        assert seen["api_key"] == "test-api-key-123"


class TestUploadFailures:

    @pytest.mark.asyncio
    async def test_timeout_marks_error_without_rollback(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        session = FakeSession()
        outcome = await DocumentUploadService(session, webhook(handler)).upload_document(support_crew(), text_upload())

        assert outcome.success is False
        assert outcome.status_code == 408
        assert "timeout" in outcome.error
        assert document_statuses(session) == ["processing", "error"]
        assert "timeout" in session.params[-1]["error_message"]
        assert session.statements_containing("DELETE") == []

    @pytest.mark.asyncio
    async def test_webhook_error_status_marks_error(self):
        body = {"status": "error", "message": "Unsupported document layout", "statusCode": 422}
        session = FakeSession()
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(422, json=body)))

        outcome = await service.upload_document(support_crew(), text_upload())

        assert outcome.status_code == 422
        assert outcome.error == "Unsupported document layout"
        assert document_statuses(session) == ["processing", "error"]
        assert session.statements_containing("DELETE") == []

    @pytest.mark.asyncio
    async def test_non_ok_response_uses_http_status(self):
        session = FakeSession()
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(502, json={"status": "success"})))

        outcome = await service.upload_document(support_crew(), text_upload())

        assert outcome.status_code == 502
        assert outcome.error == "Failed to process document"

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back_document(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = FakeSession()
        outcome = await DocumentUploadService(session, webhook(handler)).upload_document(support_crew(), text_upload())

        assert outcome.status_code == 500
        assert outcome.error == "Failed to upload document"
        assert "connection refused" in outcome.details
        assert session.statements_containing(f"DELETE FROM {VECTOR}")
        assert session.statements_containing("DELETE FROM knowledge_base_documents")

    @pytest.mark.asyncio
    async def test_failed_rollback_still_returns_500(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = FakeSession(
            responder=lambda sql, params: RuntimeError("db gone") if sql.startswith("DELETE") else None
        )
        outcome = await DocumentUploadService(session, webhook(handler)).upload_document(support_crew(), text_upload())

        assert outcome.status_code == 500

    @pytest.mark.asyncio
    async def test_missing_webhook_configuration_rolls_back(self):
        client = DocumentWebhookClient(url="https://n8n.example.com/webhook/upload", api_key="")
        client.api_key = None
        session = FakeSession()

        outcome = await DocumentUploadService(session, client).upload_document(support_crew(), text_upload())

        assert outcome.status_code == 500
        assert "API key not configured" in outcome.details
        assert session.statements_containing("DELETE FROM knowledge_base_documents")


class TestUploadValidation:

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self):
        session = FakeSession()
        outcome = await DocumentUploadService(session, webhook(lambda r: httpx.Response(200))).upload_document(
            support_crew(), text_upload(content=b""),
        )
        assert outcome.status_code == 400
        assert outcome.error == "File is empty"
        assert session.executed == []

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected(self):
        session = FakeSession()
        upload = DocumentUpload(filename="run.exe", content_type="application/x-msdownload", content=b"MZ")
        outcome = await DocumentUploadService(session, webhook(lambda r: httpx.Response(200))).upload_document(
            support_crew(), upload,
        )
        assert outcome.status_code == 400
        assert "not supported" in outcome.error

    @pytest.mark.asyncio
    async def test_lead_generation_crew_rejected(self):
        session = FakeSession()
        crew = CrewRecord.model_validate(make_crew_row(type="lead_generation"))
        outcome = await DocumentUploadService(session, webhook(lambda r: httpx.Response(200))).upload_document(
            crew, text_upload(),
        )
        assert outcome.status_code == 400
        assert "customer support" in outcome.error
        assert session.executed == []


class TestUploadToCrew:

    @pytest.mark.asyncio
    async def test_unknown_crew(self):
        session = FakeSession([FakeResult([])])
        outcome = await DocumentUploadService(session, webhook(lambda r: httpx.Response(200))).upload_to_crew(
            uuid4(), text_upload(),
        )
        assert outcome.status_code == 404

    @pytest.mark.asyncio
    async def test_loads_crew_row(self):
        row = make_crew_row(config={"vectorTableName": VECTOR})
        session = FakeSession([FakeResult([row])])
        service = DocumentUploadService(session, webhook(lambda request: httpx.Response(200, json=SUCCESS_BODY)))

        outcome = await service.upload_to_crew(row.id, text_upload())

        assert outcome.success is True
