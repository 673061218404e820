"""Domain models for financial documents.

These are the shapes the orchestrators work with. Persistence rows are
converted into them by the repository so nothing outside ``findoc.db`` sees
SQLAlchemy objects.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    """Lifecycle status. ``PROCESSING`` moves once to a terminal state."""

    PROCESSING = "Processing"
    ANALYZED = "Analyzed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DocumentStatus.PROCESSING


class DocumentType(str, Enum):
    INVOICE = "Invoice"
    PURCHASE_ORDER = "PurchaseOrder"

    @property
    def label(self) -> str:
        """Human readable name used in messages."""
        return "Invoice" if self is DocumentType.INVOICE else "Purchase order"

    @property
    def storage_prefix(self) -> str:
        return "invoices" if self is DocumentType.INVOICE else "purchase-orders"


# Columns written by the analysis worker. Cleared when analysis fails.
FINANCIAL_FIELDS: tuple[str, ...] = (
    "total_amount",
    "subtotal_amount",
    "discount_amount",
    "tax_amount",
    "currency_code",
    "currency_symbol",
    "payment_terms",
    "due_date",
    "analysis_json_url",
    "customer_id",
    "vendor_id",
)

INVOICE_FIELDS: tuple[str, ...] = ("invoice_number", "invoice_date", "purchase_order_id")
PURCHASE_ORDER_FIELDS: tuple[str, ...] = ("po_number", "po_date")


def analysis_fields(document_type: DocumentType) -> tuple[str, ...]:
    """All columns populated by a successful analysis for this document kind."""
    specific = INVOICE_FIELDS if document_type is DocumentType.INVOICE else PURCHASE_ORDER_FIELDS
    return FINANCIAL_FIELDS + specific


class DocumentRecord(BaseModel):
    """Financial document as stored (invoice or purchase order)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_type: DocumentType
    status: DocumentStatus
    partner_id: str
    file_url: str | None = None
    original_filename: str | None = None
    file_size: int | None = None
    analysis_json_url: str | None = None

    total_amount: Decimal | None = None
    subtotal_amount: Decimal | None = None
    discount_amount: Decimal | None = None
    tax_amount: Decimal | None = None
    currency_code: str | None = None
    currency_symbol: str | None = None
    payment_terms: str | None = None
    due_date: date | None = None

    # Invoice only
    invoice_number: str | None = None
    invoice_date: date | None = None
    purchase_order_id: str | None = None

    # Purchase order only
    po_number: str | None = None
    po_date: date | None = None

    customer_id: str | None = None
    vendor_id: str | None = None

    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ItemRecord(BaseModel):
    """Line entry attached to a document by (document_type, document_id)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_type: DocumentType
    document_id: str
    description: str | None = None
    quantity: int = Field(default=0, ge=0)
    unit: str | None = None
    unit_price: Decimal | None = None
    amount: Decimal | None = None


class PartyRecord(BaseModel):
    """Customer or vendor."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str | None = None
    recipient_name: str | None = None
    tax_id: str | None = None


class PartnerRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    client_id: str
    client_secret_hash: str
