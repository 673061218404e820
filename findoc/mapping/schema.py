"""Normalized data produced by the result mappers.

Field names follow the document table columns so mapped fields can be
written with a single repository update.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class PartyData(BaseModel):
    """Customer or vendor details extracted from a document."""

    name: str | None = Field(None, description="Company or person name")
    address: str | None = Field(None, description="Postal address as a single line")
    recipient_name: str | None = Field(None, description="Addressee")
    tax_id: str | None = Field(None, description="Tax / VAT identifier")


class LineItemData(BaseModel):
    description: str | None = None
    quantity: int = Field(0, ge=0)
    unit: str | None = None
    unit_price: Decimal | None = None
    amount: Decimal | None = None


class DocumentFields(BaseModel):
    """Financial fields shared by invoices and purchase orders."""

    total_amount: Decimal | None = Field(None, description="Total amount including tax")
    subtotal_amount: Decimal | None = Field(None, description="Subtotal before tax")
    discount_amount: Decimal | None = Field(None, description="Total discount")
    tax_amount: Decimal | None = Field(None, description="Tax amount")
    currency_code: str | None = Field(None, description="Currency code (ISO 4217)")
    currency_symbol: str | None = Field(None, description="Currency symbol as printed")
    payment_terms: str | None = Field(None, description="Payment terms text")
    due_date: date | None = Field(None, description="Payment due date")


class InvoiceFields(DocumentFields):
    invoice_number: str | None = Field(None, description="Invoice identifier")
    invoice_date: date | None = Field(None, description="Date invoice was issued")
    purchase_order_id: str | None = Field(None, description="Referenced purchase order number")


class PurchaseOrderFields(DocumentFields):
    po_number: str | None = Field(None, description="Purchase order identifier")
    po_date: date | None = Field(None, description="Date the order was placed")


class MappedDocument(BaseModel):
    """Output of a result mapper."""

    fields: InvoiceFields | PurchaseOrderFields
    customer: PartyData = Field(default_factory=PartyData)
    vendor: PartyData = Field(default_factory=PartyData)
    items: list[LineItemData] = Field(default_factory=list)

    def column_values(self) -> dict[str, Any]:
        """Field values keyed by column name."""
        return self.fields.model_dump()
