"""
Client for the n8n document processing webhook.

The webhook chunks and embeds an uploaded file into the crew's vector table,
tagging every chunk with the docId it was given, and answers with a JSON
summary once processing is finished.
"""
import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from autocrew_core.config import shared_settings
from autocrew_core.schemas.knowledge_base_schemas import DocumentUpload, WebhookUploadResponse

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Document processing timeout - file may be too large or complex"


class WebhookConfigurationError(RuntimeError):
    """Raised when the webhook URL or API key is not configured."""


class WebhookTimeoutError(TimeoutError):
    """Raised when the webhook does not answer within the upload timeout."""


class WebhookResponseError(RuntimeError):
    """Raised when the webhook answers with a body that cannot be parsed."""


class DocumentWebhookClient:
    """
    Posts documents to the processing webhook.

    The timeout covers the whole exchange (connect, upload, processing, response),
    not just individual socket operations.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or shared_settings.N8N_DOCUMENT_UPLOAD_WEBHOOK
        self.api_key = api_key or shared_settings.N8N_API_KEY
        self.timeout = timeout or shared_settings.DOCUMENT_UPLOAD_TIMEOUT_SECONDS
        self._transport = transport

    def _check_configuration(self):
        if not self.api_key:
            logger.error("N8N_API_KEY environment variable is not set")
            raise WebhookConfigurationError("N8N API key not configured")
        if not self.url:
            logger.error("N8N_DOCUMENT_UPLOAD_WEBHOOK environment variable is not set")
            raise WebhookConfigurationError("N8N document upload webhook not configured")

    async def upload_document(self, crew_code: str, doc_id: str, upload: DocumentUpload) -> WebhookUploadResponse:
        """
        Send a document for processing.

        Returns:
            The parsed webhook response, with http_status set from the HTTP response

        Raises:
            WebhookConfigurationError: URL or API key missing
            WebhookTimeoutError: no answer within the timeout
            WebhookResponseError: the body is not a valid webhook response
        """
        self._check_configuration()

        logger.info(
            f"Sending document to webhook: crew_code={crew_code} doc_id={doc_id} "
            f"filename={upload.filename} size={upload.size} type={upload.content_type}"
        )

        try:
            response = await asyncio.wait_for(
                self._post(crew_code, doc_id, upload),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Webhook timed out after {self.timeout}s for doc_id={doc_id}")
            raise WebhookTimeoutError(TIMEOUT_MESSAGE) from e

        logger.info(f"Webhook response status: {response.status_code}")

        try:
            body = response.json()
            parsed = WebhookUploadResponse.model_validate(body)
        except (ValueError, ValidationError) as e:
            raise WebhookResponseError(
                f"Invalid webhook response (HTTP {response.status_code}): {e}"
            ) from e

        parsed.http_status = response.status_code
        return parsed

    async def _post(self, crew_code: str, doc_id: str, upload: DocumentUpload) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(
                self.url,
                headers={"x-api-key": self.api_key},
                data={"crewCode": crew_code, "docId": doc_id},
                files={"binary": (upload.filename, upload.content, upload.content_type or "application/octet-stream")},
            )


_webhook_client = None


def get_webhook_client() -> DocumentWebhookClient:
    """Get the global webhook client instance."""
    global _webhook_client
    if _webhook_client is None:
        _webhook_client = DocumentWebhookClient()
    return _webhook_client
