"""Read side: document status and the formatted document view."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from findoc.db.repository import DocumentRepository, ItemRepository, PartyRepository
from findoc.documents.models import (
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ItemRecord,
    PartyRecord,
)
from findoc.shared.errors import AuthError, ForbiddenError, NotFoundError
from findoc.storage.service import StorageService

logger = logging.getLogger(__name__)


class DocumentStatusView(BaseModel):
    id: str
    status: DocumentStatus


@dataclass
class QueryDependencies:
    documents: DocumentRepository
    items: ItemRepository
    customers: PartyRepository
    vendors: PartyRepository
    storage: StorageService
    logger: logging.Logger = logger


class DocumentQueryService:
    def __init__(self, deps: QueryDependencies) -> None:
        self.deps = deps

    async def _load_owned(self, partner_id: str | None, document_id: str, document_type: DocumentType) -> DocumentRecord:
        if not partner_id:
            raise AuthError()
        record = await self.deps.documents.find_by_id(document_type, document_id)
        if record is None:
            raise NotFoundError(f"{document_type.label} not found")
        if record.partner_id != partner_id:
            raise ForbiddenError(f"Unauthorized: You do not own this {document_type.label.lower()}")
        return record

    async def get_status(
        self,
        partner_id: str | None,
        document_id: str,
        document_type: DocumentType,
    ) -> DocumentStatusView:
        record = await self._load_owned(partner_id, document_id, document_type)
        return DocumentStatusView(id=record.id, status=record.status)

    async def get_document(
        self,
        partner_id: str | None,
        document_id: str,
        document_type: DocumentType,
        include_download_url: bool = False,
    ) -> dict[str, Any]:
        """Formatted document: header, parties, financial details and items.

        Args:
            include_download_url: Add a presigned URL for the stored file

        Raises:
            AuthError, NotFoundError, ForbiddenError
        """
        record = await self._load_owned(partner_id, document_id, document_type)
        items = await self.deps.items.find_by_document(document_type, document_id)
        customer = await self.deps.customers.find_by_id(record.customer_id) if record.customer_id else None
        vendor = await self.deps.vendors.find_by_id(record.vendor_id) if record.vendor_id else None

        download_url = None
        if include_download_url and record.file_url:
            download_url = await self._presign(record.file_url)

        return format_document(record, items, customer, vendor, download_url)

    async def _presign(self, file_url: str) -> str | None:
        storage = self.deps.storage
        try:
            object_name = storage.object_name_from_url(file_url)
        except ValueError:
            return None
        result = await asyncio.to_thread(storage.get_presigned_url, object_name)
        if not result.success:
            self.deps.logger.warning(f"Could not presign {object_name}: {result.error}")
        return result.url


def _party(party: PartyRecord | None) -> dict[str, Any]:
    if party is None:
        return {"id": None, "name": None, "recipient_name": None, "address": "", "tax_id": None}
    return {
        "id": party.id,
        "name": party.name,
        "recipient_name": party.recipient_name,
        "address": party.address or "",
        "tax_id": party.tax_id,
    }


def _items(items: list[ItemRecord]) -> list[dict[str, Any]]:
    return [
        {
            "amount": item.amount,
            "description": item.description,
            "quantity": item.quantity,
            "unit": item.unit,
            "unit_price": item.unit_price,
        }
        for item in items
    ]


def format_document(
    record: DocumentRecord,
    items: list[ItemRecord],
    customer: PartyRecord | None = None,
    vendor: PartyRecord | None = None,
    download_url: str | None = None,
) -> dict[str, Any]:
    """Build the response body for one document."""
    if record.document_type is DocumentType.INVOICE:
        details_key = "invoice_details"
        details = {
            "invoice_number": record.invoice_number,
            "purchase_order_id": record.purchase_order_id,
            "invoice_date": record.invoice_date,
            "due_date": record.due_date,
            "payment_terms": record.payment_terms,
        }
    else:
        details_key = "purchase_order_details"
        details = {
            "po_number": record.po_number,
            "po_date": record.po_date,
            "payment_terms": record.payment_terms,
        }

    header = {
        details_key: {**details, "status": record.status},
        "partner_details": {"id": record.partner_id},
        "file_details": {
            "original_filename": record.original_filename,
            "file_size": record.file_size,
            "file_url": record.file_url,
            "download_url": download_url,
        },
        "vendor_details": _party(vendor),
        "customer_details": _party(customer),
        "financial_details": {
            "currency": {
                "currency_symbol": record.currency_symbol,
                "currency_code": record.currency_code,
            },
            "total_amount": record.total_amount,
            "subtotal_amount": record.subtotal_amount,
            "discount_amount": record.discount_amount,
            "total_tax_amount": record.tax_amount,
        },
    }
    return {"data": {"documents": [{"id": record.id, "header": header, "items": _items(items)}]}}
