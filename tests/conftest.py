"""Shared fixtures: settings, in-memory database and generated PDFs."""

import io
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from pypdf import PdfWriter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from findoc.db.session import create_engine, create_schema, create_session_factory
from findoc.shared.config import Settings


def make_pdf(pages: int = 1, password: str | None = None) -> bytes:
    """Build a PDF with ``pages`` blank pages, optionally encrypted."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    if password is not None:
        writer.encrypt(user_password=password, algorithm="AES-256")
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


@pytest.fixture
def settings() -> Settings:
    """Test settings: in-memory SQLite and storage credentials."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        storage_endpoint="localhost:9000",
        storage_access_key="test-access-key",
        storage_secret_key="test-secret-key",
        storage_bucket="test-documents",
        storage_secure=False,
        azure_endpoint="https://example.cognitiveservices.azure.com/",
        azure_key="test-key",
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_engine(settings)
    await create_schema(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def pdf_factory() -> Callable[..., bytes]:
    return make_pdf


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf(pages=2)


@pytest.fixture
def invoice_analysis_result() -> dict[str, Any]:
    """Invoice result in the ``AnalyzeResult.as_dict()`` shape."""
    return {
        "modelId": "prebuilt-invoice",
        "documents": [
            {
                "docType": "invoice",
                "fields": {
                    "InvoiceId": {"type": "string", "content": "INV-1001", "valueString": "INV-1001"},
                    "InvoiceDate": {"type": "date", "content": "15/03/2025", "valueDate": "2025-03-15"},
                    "PurchaseOrder": {"type": "string", "content": "PO-77"},
                    "PaymentTerm": {"type": "string", "content": "Net 45"},
                    "InvoiceTotal": {
                        "type": "currency",
                        "content": "$1,100.00",
                        "valueCurrency": {"amount": 1100.0, "currencySymbol": "$", "currencyCode": "USD"},
                    },
                    "SubTotal": {
                        "type": "currency",
                        "content": "$1,000.00",
                        "valueCurrency": {"amount": 1000.0, "currencySymbol": "$", "currencyCode": "USD"},
                    },
                    "TotalTax": {
                        "type": "currency",
                        "content": "$100.00",
                        "valueCurrency": {"amount": 100.0, "currencySymbol": "$", "currencyCode": "USD"},
                    },
                    "CustomerName": {"type": "string", "content": "Globex Corp"},
                    "CustomerAddress": {"type": "address", "content": "1 Main St\nSpringfield"},
                    "VendorName": {"type": "string", "content": "Initech"},
                    "VendorTaxId": {"type": "string", "content": "TX-42"},
                    "Items": {
                        "type": "array",
                        "valueArray": [
                            {
                                "type": "object",
                                "valueObject": {
                                    "Description": {"type": "string", "content": "Consulting"},
                                    "Quantity": {"type": "number", "content": "10", "valueNumber": 10},
                                    "Unit": {"type": "string", "content": "h"},
                                    "UnitPrice": {
                                        "type": "currency",
                                        "content": "$80.00",
                                        "valueCurrency": {"amount": 80.0, "currencyCode": "USD"},
                                    },
                                    "Amount": {
                                        "type": "currency",
                                        "content": "$800.00",
                                        "valueCurrency": {"amount": 800.0, "currencyCode": "USD"},
                                    },
                                },
                            },
                            {
                                "type": "object",
                                "valueObject": {
                                    "Description": {"type": "string", "content": "Travel"},
                                    "Quantity": {"type": "number", "content": "1", "valueNumber": 1},
                                    "Amount": {
                                        "type": "currency",
                                        "content": "$200.00",
                                        "valueCurrency": {"amount": 200.0, "currencyCode": "USD"},
                                    },
                                },
                            },
                        ],
                    },
                },
            }
        ],
    }
