"""Unit tests for the SQLAlchemy repositories (in-memory SQLite)."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from findoc.db.models import Customer
from findoc.db.repository import DocumentRepository, ItemRepository, PartnerRepository, PartyRepository
from findoc.documents.models import DocumentStatus, DocumentType
from findoc.mapping.schema import LineItemData, PartyData


async def _create(documents: DocumentRepository, document_type: DocumentType = DocumentType.INVOICE) -> str:
    document_id = str(uuid.uuid4())
    await documents.create_initial(
        document_type,
        document_id=document_id,
        partner_id="partner-1",
        file_url=f"http://localhost:9000/test-documents/invoices/{document_id}.pdf",
        original_filename="invoice.pdf",
        file_size=1234,
    )
    return document_id


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_create_initial(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)

        record = await documents.find_by_id(DocumentType.INVOICE, document_id)

        assert record is not None
        assert record.status is DocumentStatus.PROCESSING
        assert record.document_type is DocumentType.INVOICE
        assert record.partner_id == "partner-1"
        assert record.file_url.endswith(f"{document_id}.pdf")
        assert record.file_size == 1234
        assert record.total_amount is None

    @pytest.mark.asyncio
    async def test_kinds_do_not_share_ids(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents, DocumentType.INVOICE)

        assert await documents.find_by_id(DocumentType.PURCHASE_ORDER, document_id) is None

    @pytest.mark.asyncio
    async def test_status_transitions_once(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)

        assert await documents.update_status(DocumentType.INVOICE, document_id, DocumentStatus.ANALYZED) is True
        assert await documents.mark_failed(DocumentType.INVOICE, document_id) is False
        assert await documents.update_status(DocumentType.INVOICE, document_id, DocumentStatus.FAILED) is False

        record = await documents.find_by_id(DocumentType.INVOICE, document_id)
        assert record.status is DocumentStatus.ANALYZED

    @pytest.mark.asyncio
    async def test_mark_failed_clears_analysis_fields(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)
        await documents.update(
            DocumentType.INVOICE,
            document_id,
            {"total_amount": Decimal("10.00"), "invoice_number": "INV-1", "currency_code": "USD"},
        )

        assert await documents.mark_failed(DocumentType.INVOICE, document_id) is True

        record = await documents.find_by_id(DocumentType.INVOICE, document_id)
        assert record.status is DocumentStatus.FAILED
        assert record.total_amount is None
        assert record.invoice_number is None
        assert record.currency_code is None
        assert record.file_url is not None

    @pytest.mark.asyncio
    async def test_mark_failed_removes_items(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        items = ItemRepository(session_factory)
        document_id = await _create(documents)
        await items.create_document_item(DocumentType.INVOICE, document_id, LineItemData(description="Consulting"))

        assert await documents.mark_failed(DocumentType.INVOICE, document_id) is True

        assert await items.find_by_document(DocumentType.INVOICE, document_id) == []

    @pytest.mark.asyncio
    async def test_mark_failed_keeps_items_of_analyzed_document(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = DocumentRepository(session_factory)
        items = ItemRepository(session_factory)
        document_id = await _create(documents)
        await items.create_document_item(DocumentType.INVOICE, document_id, LineItemData(description="Consulting"))
        await documents.update_status(DocumentType.INVOICE, document_id, DocumentStatus.ANALYZED)

        assert await documents.mark_failed(DocumentType.INVOICE, document_id) is False

        assert len(await items.find_by_document(DocumentType.INVOICE, document_id)) == 1

    @pytest.mark.asyncio
    async def test_update_rejects_non_analysis_columns(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)

        with pytest.raises(ValueError):
            await documents.update(DocumentType.INVOICE, document_id, {"partner_id": "someone-else"})
        with pytest.raises(ValueError):
            await documents.update(DocumentType.PURCHASE_ORDER, document_id, {"invoice_number": "X"})

    @pytest.mark.asyncio
    async def test_update_ignores_terminal_documents(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)
        await documents.mark_failed(DocumentType.INVOICE, document_id)

        assert await documents.update(DocumentType.INVOICE, document_id, {"invoice_number": "LATE"}) is False

        record = await documents.find_by_id(DocumentType.INVOICE, document_id)
        assert record.invoice_number is None

    @pytest.mark.asyncio
    async def test_soft_delete_hides_record(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        document_id = await _create(documents)

        assert await documents.delete(DocumentType.INVOICE, document_id) is True

        assert await documents.find_by_id(DocumentType.INVOICE, document_id) is None
        hidden = await documents.find_by_id(DocumentType.INVOICE, document_id, include_deleted=True)
        assert hidden.is_deleted is True
        assert hidden.deleted_at is not None
        assert await documents.delete(DocumentType.INVOICE, document_id) is False

    @pytest.mark.asyncio
    async def test_hard_delete_removes_items(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = DocumentRepository(session_factory)
        items = ItemRepository(session_factory)
        document_id = await _create(documents)
        await items.create_document_item(DocumentType.INVOICE, document_id, LineItemData(description="Widget"))

        assert await documents.delete(DocumentType.INVOICE, document_id, permanent=True) is True

        assert await documents.find_by_id(DocumentType.INVOICE, document_id, include_deleted=True) is None
        assert await items.find_by_document(DocumentType.INVOICE, document_id) == []


class TestItemRepository:
    @pytest.mark.asyncio
    async def test_items_keyed_by_kind_and_id(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        items = ItemRepository(session_factory)
        await items.create_document_item(
            DocumentType.INVOICE,
            "doc-1",
            LineItemData(description="Widget", quantity=2, unit_price=Decimal("5.00"), amount=Decimal("10.00")),
        )
        await items.create_document_item(DocumentType.PURCHASE_ORDER, "doc-1", LineItemData(description="Other"))

        found = await items.find_by_document(DocumentType.INVOICE, "doc-1")

        assert len(found) == 1
        assert found[0].description == "Widget"
        assert found[0].quantity == 2
        assert found[0].amount == Decimal("10.00")


class TestPartyRepository:
    @pytest.mark.asyncio
    async def test_find_or_create_reuses_match(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        customers = PartyRepository(session_factory, Customer)
        data = PartyData(name="Globex", tax_id="T-1", address="1 Main St")

        first = await customers.find_or_create(data)
        second = await customers.find_or_create(data)
        other = await customers.find_or_create(PartyData(name="Globex", tax_id="T-2"))

        assert first.id == second.id
        assert other.id != first.id
        assert (await customers.find_by_id(first.id)).name == "Globex"


class TestPartnerRepository:
    @pytest.mark.asyncio
    async def test_create_and_find(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        partners = PartnerRepository(session_factory)
        created = await partners.create("Acme", "acme", "hash")

        found = await partners.find_by_client_id("acme")

        assert found is not None
        assert found.id == created.id
        assert await partners.find_by_client_id("missing") is None
