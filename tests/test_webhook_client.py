"""
Document webhook client tests
"""

import asyncio
from unittest.mock import patch

import httpx
import pytest

from autocrew_core.config import shared_settings
from autocrew_core.schemas.knowledge_base_schemas import DocumentUpload
from autocrew_core.utils.webhook_client import (
    TIMEOUT_MESSAGE,
    DocumentWebhookClient,
    WebhookConfigurationError,
    WebhookResponseError,
    WebhookTimeoutError,
)

WEBHOOK_URL = "https://n8n.example.com/webhook/document-upload"

SUCCESS_BODY = {
    "status": "success",
    "message": "Document processed",
    "metadata": {"crew_code": "ACME-001-SUP-001", "doc_id": "doc-1"},
    "document": {"status": "indexed", "chunk_count": 12, "embeddings_model": "text-embedding-3-small"},
}


@pytest.fixture
def upload():
    return DocumentUpload(filename="faq.pdf", content_type="application/pdf", content=b"%PDF-1.4 test")


def make_client(handler, **kwargs):
    return DocumentWebhookClient(
        url=WEBHOOK_URL,
        api_key="test-api-key-123",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestDocumentWebhookClient:

    @pytest.mark.asyncio
    async def test_successful_upload(self, upload):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(200, json=SUCCESS_BODY)

        response = await make_client(handler).upload_document("ACME-001-SUP-001", "doc-1", upload)

        assert response.ok
        assert not response.is_error
        assert response.chunk_count == 12
        assert response.http_status == 200

        request = captured["request"]
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["x-api-key"] == "test-api-key-123"
        body = request.content
        assert b'name="crewCode"' in body
        assert b"ACME-001-SUP-001" in body
        assert b'name="docId"' in body
        assert b'name="binary"; filename="faq.pdf"' in body

    @pytest.mark.asyncio
    async def test_error_status_preserved(self, upload):
        def handler(request):
            return httpx.Response(422, json={"status": "error", "message": "Unreadable PDF", "statusCode": 422})

        response = await make_client(handler).upload_document("ACME-001-SUP-001", "doc-1", upload)

        assert response.is_error
        assert response.http_status == 422
        assert response.status_code == 422
        assert response.message == "Unreadable PDF"

    @pytest.mark.asyncio
    async def test_http_timeout(self, upload):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(WebhookTimeoutError, match=TIMEOUT_MESSAGE):
            await make_client(handler).upload_document("ACME-001-SUP-001", "doc-1", upload)

    @pytest.mark.asyncio
    async def test_total_timeout(self, upload):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=SUCCESS_BODY)

        client = make_client(handler, timeout=0.05)

        with pytest.raises(WebhookTimeoutError):
            await client.upload_document("ACME-001-SUP-001", "doc-1", upload)

    @pytest.mark.asyncio
    async def test_non_json_body(self, upload):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(WebhookResponseError, match="HTTP 502"):
            await make_client(handler).upload_document("ACME-001-SUP-001", "doc-1", upload)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, upload):
        with patch.object(shared_settings, "N8N_API_KEY", None):
            client = DocumentWebhookClient(url=WEBHOOK_URL)

        with pytest.raises(WebhookConfigurationError, match="API key"):
            await client.upload_document("ACME-001-SUP-001", "doc-1", upload)

    @pytest.mark.asyncio
    async def test_missing_url(self, upload):
        with patch.object(shared_settings, "N8N_DOCUMENT_UPLOAD_WEBHOOK", None):
            client = DocumentWebhookClient(api_key="test-api-key-123")

        with pytest.raises(WebhookConfigurationError, match="webhook not configured"):
            await client.upload_document("ACME-001-SUP-001", "doc-1", upload)
