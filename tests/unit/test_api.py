"""Unit tests for the HTTP API.

Tests cover:
- Health, readiness and metrics endpoints
- Credential headers
- Upload, status, retrieval and deletion routes for both document kinds
- Error responses
"""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from findoc.api.main import app, get_container
from findoc.deletion.orchestrator import DeletionOutcome
from findoc.documents.models import DocumentStatus, DocumentType
from findoc.documents.query import DocumentStatusView
from findoc.ingestion.orchestrator import SubmissionResult
from findoc.shared.errors import (
    AuthError,
    ConflictError,
    EncryptedPdfError,
    GatewayTimeoutError,
    InternalError,
    NotFoundError,
)

AUTH = {"client_id": "acme-client", "client_secret": "s3cret"}


@pytest.fixture
def container() -> MagicMock:
    mock = MagicMock()
    mock.authenticator.authenticate = AsyncMock(return_value="partner-1")
    mock.check_database = AsyncMock(return_value=True)
    mock.storage.health_check.return_value = True
    mock.ingestion.submit = AsyncMock(
        return_value=SubmissionResult(id="doc-1", status=DocumentStatus.PROCESSING, message="Invoice upload initiated")
    )
    mock.queries.get_status = AsyncMock(return_value=DocumentStatusView(id="doc-1", status=DocumentStatus.ANALYZED))
    mock.queries.get_document = AsyncMock(return_value={"data": {"documents": [{"id": "doc-1"}]}})
    mock.deletion.delete_document = AsyncMock(return_value=DeletionOutcome(message="Invoice successfully deleted"))
    return mock


@pytest.fixture
def client(container: MagicMock) -> Iterator[TestClient]:
    """Create test client with the service container replaced."""
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "service" in data


def test_readiness_check(client: TestClient) -> None:
    response = client.get("/ready")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"ready": True, "database": True, "storage": True}


def test_readiness_fails_without_database(client: TestClient, container: MagicMock) -> None:
    container.check_database.return_value = False

    response = client.get("/ready")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["database"] is False


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == status.HTTP_200_OK
    assert "text/plain" in response.headers["content-type"]
    assert "http_requests_total" in response.text
    assert "documents_submitted_total" in response.text


def test_upload_returns_accepted(client: TestClient, container: MagicMock, pdf_bytes: bytes) -> None:
    files = {"file": ("invoice.pdf", pdf_bytes, "application/pdf")}

    response = client.post("/api/v1/invoices/upload", files=files, headers=AUTH)

    assert response.status_code == status.HTTP_202_ACCEPTED
    assert response.json() == {"id": "doc-1", "status": "Processing", "message": "Invoice upload initiated"}
    args = container.ingestion.submit.await_args.args
    assert args == (pdf_bytes, "invoice.pdf", "application/pdf", "partner-1", DocumentType.INVOICE, None)
    container.authenticator.authenticate.assert_awaited_once_with("acme-client", "s3cret")


def test_upload_purchase_order_with_password(client: TestClient, container: MagicMock, pdf_bytes: bytes) -> None:
    files = {"file": ("po.pdf", pdf_bytes, "application/pdf")}

    response = client.post(
        "/api/v1/purchase-orders/upload", files=files, data={"password": "pw"}, headers=AUTH
    )

    assert response.status_code == status.HTTP_202_ACCEPTED
    args = container.ingestion.submit.await_args.args
    assert args[4] is DocumentType.PURCHASE_ORDER
    assert args[5] == "pw"


def test_upload_without_file(client: TestClient, container: MagicMock) -> None:
    client.post("/api/v1/invoices/upload", headers=AUTH)

    args = container.ingestion.submit.await_args.args
    assert args[0] is None
    assert args[1] is None


def test_upload_without_credentials(client: TestClient, container: MagicMock, pdf_bytes: bytes) -> None:
    container.authenticator.authenticate.side_effect = AuthError("Unauthorized: Missing credentials")
    files = {"file": ("invoice.pdf", pdf_bytes, "application/pdf")}

    response = client.post("/api/v1/invoices/upload", files=files)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"message": "Unauthorized: Missing credentials"}
    container.authenticator.authenticate.assert_awaited_once_with(None, None)
    container.ingestion.submit.assert_not_called()


def test_upload_encrypted_pdf(client: TestClient, container: MagicMock, pdf_bytes: bytes) -> None:
    container.ingestion.submit.side_effect = EncryptedPdfError()
    files = {"file": ("invoice.pdf", pdf_bytes, "application/pdf")}

    response = client.post("/api/v1/invoices/upload", files=files, headers=AUTH)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "encrypted" in response.json()["message"]


def test_upload_timeout(client: TestClient, container: MagicMock, pdf_bytes: bytes) -> None:
    container.ingestion.submit.side_effect = GatewayTimeoutError()
    files = {"file": ("invoice.pdf", pdf_bytes, "application/pdf")}

    response = client.post("/api/v1/invoices/upload", files=files, headers=AUTH)

    assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT


def test_get_status(client: TestClient, container: MagicMock) -> None:
    response = client.get("/api/v1/invoices/doc-1/status", headers=AUTH)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"id": "doc-1", "status": "Analyzed"}
    container.queries.get_status.assert_awaited_once_with("partner-1", "doc-1", DocumentType.INVOICE)


def test_get_status_not_found(client: TestClient, container: MagicMock) -> None:
    container.queries.get_status.side_effect = NotFoundError("Invoice not found")

    response = client.get("/api/v1/invoices/missing/status", headers=AUTH)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Invoice not found"}


def test_get_document(client: TestClient, container: MagicMock) -> None:
    response = client.get("/api/v1/purchase-orders/doc-1?include_download_url=true", headers=AUTH)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["documents"][0]["id"] == "doc-1"
    container.queries.get_document.assert_awaited_once_with(
        "partner-1", "doc-1", DocumentType.PURCHASE_ORDER, include_download_url=True
    )


def test_delete_document(client: TestClient, container: MagicMock) -> None:
    response = client.delete("/api/v1/invoices/doc-1", headers=AUTH)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Invoice successfully deleted"
    container.deletion.delete_document.assert_awaited_once_with(
        "partner-1", "doc-1", DocumentType.INVOICE, permanent=False
    )


def test_delete_conflict(client: TestClient, container: MagicMock) -> None:
    container.deletion.delete_document.side_effect = ConflictError(
        "Invoice cannot be deleted unless it is Analyzed"
    )

    response = client.delete("/api/v1/invoices/doc-1", headers=AUTH)

    assert response.status_code == status.HTTP_409_CONFLICT


def test_delete_storage_failure_includes_error(client: TestClient, container: MagicMock) -> None:
    container.deletion.delete_document.side_effect = InternalError(
        "Failed to delete file from storage", detail="S3 error: AccessDenied - denied"
    )

    response = client.delete("/api/v1/invoices/doc-1", headers=AUTH)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {
        "message": "Failed to delete file from storage",
        "error": "S3 error: AccessDenied - denied",
    }
