"""Unit tests for the Azure Document Intelligence provider and factory."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError

from findoc.analysis.azure_provider import AzureDocumentAnalyzer
from findoc.analysis.factory import create_analysis_provider
from findoc.documents.models import DocumentType
from findoc.shared.config import Settings
from findoc.shared.errors import AnalysisProviderError


def _http_error(status_code: int) -> HttpResponseError:
    error = HttpResponseError(message=f"HTTP {status_code}")
    error.status_code = status_code
    return error


@pytest.fixture
def mock_client() -> MagicMock:
    result = MagicMock()
    result.as_dict.return_value = {"modelId": "prebuilt-invoice", "documents": [{"fields": {}}]}
    poller = MagicMock()
    poller.result = AsyncMock(return_value=result)

    client = MagicMock()
    client.begin_analyze_document = AsyncMock(return_value=poller)
    client.close = AsyncMock()
    return client


@pytest.fixture
def provider(settings: Settings, mock_client: MagicMock) -> AzureDocumentAnalyzer:
    analyzer = AzureDocumentAnalyzer(settings)
    analyzer._client = mock_client
    return analyzer


class TestAzureDocumentAnalyzer:
    def test_availability(self, settings: Settings) -> None:
        assert AzureDocumentAnalyzer(settings).is_available() is True
        assert AzureDocumentAnalyzer(Settings(_env_file=None, azure_endpoint="", azure_key="")).is_available() is False
        assert AzureDocumentAnalyzer(settings).provider_name == "azure"

    @pytest.mark.asyncio
    async def test_analyze_bytes(self, provider: AzureDocumentAnalyzer, mock_client: MagicMock) -> None:
        result = await provider.analyze(b"%PDF-1.4 data", DocumentType.INVOICE)

        assert result["modelId"] == "prebuilt-invoice"
        model_id, request = mock_client.begin_analyze_document.await_args.args
        assert model_id == "prebuilt-invoice"
        assert request.bytes_source == b"%PDF-1.4 data"

    @pytest.mark.asyncio
    async def test_analyze_url_uses_purchase_order_model(
        self, settings: Settings, mock_client: MagicMock
    ) -> None:
        settings.purchase_order_model_id = "custom-po-model"
        provider = AzureDocumentAnalyzer(settings)
        provider._client = mock_client

        await provider.analyze("https://files.example.com/po.pdf", DocumentType.PURCHASE_ORDER)

        model_id, request = mock_client.begin_analyze_document.await_args.args
        assert model_id == "custom-po-model"
        assert request.url_source == "https://files.example.com/po.pdf"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_transient_http_errors(
        self, provider: AzureDocumentAnalyzer, mock_client: MagicMock, status_code: int
    ) -> None:
        mock_client.begin_analyze_document.side_effect = _http_error(status_code)

        with pytest.raises(AnalysisProviderError) as exc_info:
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

        assert exc_info.value.transient is True
        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_conflict_is_permanent(self, provider: AzureDocumentAnalyzer, mock_client: MagicMock) -> None:
        mock_client.begin_analyze_document.side_effect = _http_error(409)

        with pytest.raises(AnalysisProviderError, match="Conflict") as exc_info:
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_bad_request_is_permanent(self, provider: AzureDocumentAnalyzer, mock_client: MagicMock) -> None:
        mock_client.begin_analyze_document.side_effect = _http_error(400)

        with pytest.raises(AnalysisProviderError, match="Failed to process the document") as exc_info:
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(
        self, provider: AzureDocumentAnalyzer, mock_client: MagicMock
    ) -> None:
        mock_client.begin_analyze_document.side_effect = ServiceRequestError("connection refused")

        with pytest.raises(AnalysisProviderError) as exc_info:
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_timeout(self, settings: Settings, mock_client: MagicMock) -> None:
        async def slow(*args: object, **kwargs: object) -> None:
            await asyncio.sleep(1)

        settings.analysis_timeout_seconds = 0.01
        mock_client.begin_analyze_document.side_effect = slow
        provider = AzureDocumentAnalyzer(settings)
        provider._client = mock_client

        with pytest.raises(AnalysisProviderError, match="timed out") as exc_info:
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_empty_source_rejected(self, provider: AzureDocumentAnalyzer) -> None:
        with pytest.raises(AnalysisProviderError):
            await provider.analyze(b"", DocumentType.INVOICE)

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        provider = AzureDocumentAnalyzer(Settings(_env_file=None, azure_endpoint="", azure_key=""))

        with pytest.raises(AnalysisProviderError, match="not configured"):
            await provider.analyze(b"%PDF-", DocumentType.INVOICE)

    @pytest.mark.asyncio
    async def test_close(self, provider: AzureDocumentAnalyzer, mock_client: MagicMock) -> None:
        await provider.close()

        mock_client.close.assert_awaited_once()
        assert provider._client is None


class TestProviderFactory:
    def test_creates_azure_provider(self, settings: Settings) -> None:
        provider = create_analysis_provider(settings)

        assert isinstance(provider, AzureDocumentAnalyzer)
        assert provider.is_available()

    def test_unconfigured_provider_is_still_created(
        self, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        settings.azure_key = ""

        provider = create_analysis_provider(settings)

        assert not provider.is_available()
        assert "not fully available" in caplog.text
