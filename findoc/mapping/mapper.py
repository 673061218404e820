"""Result mappers: raw analysis result -> normalized document fields.

One mapper per document kind. Both read the first analyzed document of the
result and share the field parser and entity extraction.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from findoc.documents.models import DocumentType
from findoc.mapping import entities
from findoc.mapping.field_parser import (
    CurrencyValue,
    calculate_due_date,
    get_content,
    parse_currency,
    parse_date,
)
from findoc.mapping.schema import InvoiceFields, MappedDocument, PurchaseOrderFields

logger = logging.getLogger(__name__)


class ResultMapper(ABC):
    """Base class for mapping an analysis result to a ``MappedDocument``."""

    document_type: DocumentType

    def map(self, analysis_result: dict[str, Any], partner_id: str) -> MappedDocument:
        """Map a raw analysis result.

        Args:
            analysis_result: ``AnalyzeResult.as_dict()`` output
            partner_id: Owner of the document

        Returns:
            MappedDocument with fields, parties and line items

        Raises:
            ValueError: If the result has no analyzed document or partner_id is empty
        """
        documents = (analysis_result or {}).get("documents") or []
        if not documents:
            raise ValueError("Invalid OCR result format")
        if not partner_id:
            raise ValueError("Partner ID is required")

        fields = documents[0].get("fields") or {}
        mapped = MappedDocument(
            fields=self._map_fields(fields),
            customer=entities.extract_customer(fields),
            vendor=entities.extract_vendor(fields),
            items=entities.extract_line_items(fields.get("Items")),
        )
        logger.debug(f"Mapped {self.document_type.value} fields: {mapped.fields.model_dump_json()}")
        return mapped

    @abstractmethod
    def _map_fields(self, fields: dict[str, Any]) -> InvoiceFields | PurchaseOrderFields:
        pass

    @staticmethod
    def _amounts(fields: dict[str, Any]) -> dict[str, Any]:
        """Monetary fields and the document currency."""
        total = parse_currency(fields.get("InvoiceTotal") or fields.get("Total"))
        subtotal = parse_currency(fields.get("SubTotal"))
        discount = parse_currency(fields.get("TotalDiscount") or fields.get("Discount"))
        tax = parse_currency(fields.get("TotalTax") or fields.get("Tax"))

        currency = next(
            (value for value in (total, subtotal, discount, tax) if value.currency_code or value.currency_symbol),
            CurrencyValue(),
        )
        return {
            "total_amount": total.amount,
            "subtotal_amount": subtotal.amount if subtotal.amount is not None else total.amount,
            "discount_amount": discount.amount,
            "tax_amount": tax.amount,
            "currency_code": currency.currency_code,
            "currency_symbol": currency.currency_symbol,
        }


class InvoiceMapper(ResultMapper):
    document_type = DocumentType.INVOICE

    def _map_fields(self, fields: dict[str, Any]) -> InvoiceFields:
        invoice_date: date = parse_date(fields.get("InvoiceDate"))  # type: ignore[assignment]
        payment_terms = get_content(fields.get("PaymentTerm"))
        due_date = parse_date(fields.get("DueDate"), optional=True)

        return InvoiceFields(
            invoice_number=get_content(fields.get("InvoiceId")),
            invoice_date=invoice_date,
            purchase_order_id=get_content(fields.get("PurchaseOrder")),
            due_date=due_date or calculate_due_date(invoice_date, payment_terms),
            payment_terms=payment_terms,
            **self._amounts(fields),
        )


class PurchaseOrderMapper(ResultMapper):
    document_type = DocumentType.PURCHASE_ORDER

    def _map_fields(self, fields: dict[str, Any]) -> PurchaseOrderFields:
        return PurchaseOrderFields(
            po_number=get_content(fields.get("PurchaseOrder") or fields.get("PONumber")),
            po_date=parse_date(fields.get("InvoiceDate") or fields.get("PODate")),
            payment_terms=get_content(fields.get("PaymentTerm")),
            **self._amounts(fields),
        )


_MAPPERS: dict[DocumentType, type[ResultMapper]] = {
    DocumentType.INVOICE: InvoiceMapper,
    DocumentType.PURCHASE_ORDER: PurchaseOrderMapper,
}


def get_mapper(document_type: DocumentType) -> ResultMapper:
    return _MAPPERS[document_type]()
