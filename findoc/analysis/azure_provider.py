"""Azure Document Intelligence analysis provider.

Runs the prebuilt invoice model (or a configured custom model for purchase
orders) and returns ``AnalyzeResult.as_dict()``.

Based on the azure-ai-documentintelligence async client:
https://learn.microsoft.com/python/api/overview/azure/ai-documentintelligence-readme
"""

import asyncio
import logging
from typing import Any

from azure.ai.documentintelligence.aio import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeDocumentRequest
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import HttpResponseError, ServiceRequestError, ServiceResponseError

from findoc.analysis.base import AnalysisProvider
from findoc.documents.models import DocumentType
from findoc.shared.config import Settings
from findoc.shared.errors import AnalysisProviderError

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class AzureDocumentAnalyzer(AnalysisProvider):
    """Analysis provider backed by Azure Document Intelligence."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self._client: DocumentIntelligenceClient | None = None

    @property
    def provider_name(self) -> str:
        return "azure"

    def is_available(self) -> bool:
        return bool(self.settings.azure_endpoint and self.settings.azure_key)

    def _get_client(self) -> DocumentIntelligenceClient:
        if self._client is None:
            if not self.is_available():
                raise AnalysisProviderError(
                    "Azure Document Intelligence not configured. "
                    "Set APP_AZURE_ENDPOINT and APP_AZURE_KEY."
                )
            self._client = DocumentIntelligenceClient(
                endpoint=self.settings.azure_endpoint,
                credential=AzureKeyCredential(self.settings.azure_key),
            )
            logger.info(f"Azure Document Intelligence client initialized for {self.settings.azure_endpoint}")
        return self._client

    def _model_id(self, document_type: DocumentType) -> str:
        if document_type is DocumentType.PURCHASE_ORDER:
            return self.settings.purchase_order_model_id
        return self.settings.invoice_model_id

    async def analyze(self, source: bytes | str, document_type: DocumentType) -> dict[str, Any]:
        if not source:
            raise AnalysisProviderError("Document source is required")

        if isinstance(source, str):
            request = AnalyzeDocumentRequest(url_source=source)
        else:
            request = AnalyzeDocumentRequest(bytes_source=source)

        model_id = self._model_id(document_type)
        try:
            return await asyncio.wait_for(
                self._run(model_id, request),
                timeout=self.settings.analysis_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise AnalysisProviderError(
                f"Analysis timed out after {self.settings.analysis_timeout_seconds}s",
                transient=True,
            ) from e
        except HttpResponseError as e:
            raise self._classify(e) from e
        except (ServiceRequestError, ServiceResponseError) as e:
            raise AnalysisProviderError(f"Analysis service unreachable: {e}", transient=True) from e

    async def _run(self, model_id: str, request: AnalyzeDocumentRequest) -> dict[str, Any]:
        client = self._get_client()
        logger.info(f"Starting analysis with model {model_id}")
        poller = await client.begin_analyze_document(model_id, request)
        result = await poller.result()
        logger.info("Analysis completed")
        return result.as_dict()

    @staticmethod
    def _classify(error: HttpResponseError) -> AnalysisProviderError:
        status_code = error.status_code
        if status_code in TRANSIENT_STATUS_CODES:
            message = "Service is temporarily unavailable. Please try again later."
        elif status_code == 409:
            message = "Conflict error occurred. Please check the document and try again."
        else:
            message = "Failed to process the document"
        logger.error(f"Azure analysis error ({status_code}): {error.message}")
        return AnalysisProviderError(
            message,
            transient=status_code in TRANSIENT_STATUS_CODES,
            status_code=status_code,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
