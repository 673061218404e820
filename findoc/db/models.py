"""SQLAlchemy tables for partners, documents, parties and line items."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from findoc.documents.models import DocumentStatus, DocumentType

Base = declarative_base()


class Partner(Base):
    """API client owning documents. Authenticated by client_id/client_secret."""

    __tablename__ = "partners"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    client_id = Column(String(255), nullable=False, unique=True, index=True)
    client_secret_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FinancialDocumentMixin:
    """Columns shared by invoices and purchase orders."""

    id = Column(String(36), primary_key=True)
    status = Column(
        Enum(DocumentStatus, values_callable=lambda e: [m.value for m in e], name="document_status"),
        nullable=False,
        default=DocumentStatus.PROCESSING,
        index=True,
    )
    partner_id = Column(String(36), nullable=False, index=True)

    file_url = Column(String(1024), nullable=True)
    original_filename = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    analysis_json_url = Column(String(1024), nullable=True)

    total_amount = Column(Numeric(18, 2), nullable=True)
    subtotal_amount = Column(Numeric(18, 2), nullable=True)
    discount_amount = Column(Numeric(18, 2), nullable=True)
    tax_amount = Column(Numeric(18, 2), nullable=True)
    currency_code = Column(String(8), nullable=True)
    currency_symbol = Column(String(8), nullable=True)
    payment_terms = Column(String(255), nullable=True)
    due_date = Column(Date, nullable=True)

    customer_id = Column(String(36), nullable=True)
    vendor_id = Column(String(36), nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False, server_default="0")
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Invoice(FinancialDocumentMixin, Base):
    __tablename__ = "invoices"

    document_type = DocumentType.INVOICE

    invoice_number = Column(String(255), nullable=True)
    invoice_date = Column(Date, nullable=True)
    purchase_order_id = Column(String(255), nullable=True)


class PurchaseOrder(FinancialDocumentMixin, Base):
    __tablename__ = "purchase_orders"

    document_type = DocumentType.PURCHASE_ORDER

    po_number = Column(String(255), nullable=True)
    po_date = Column(Date, nullable=True)


class Item(Base):
    """Line item. Belongs to one document through (document_type, document_id)."""

    __tablename__ = "items"
    __table_args__ = (Index("ix_items_document", "document_type", "document_id"),)

    id = Column(String(36), primary_key=True)
    document_type = Column(
        Enum(DocumentType, values_callable=lambda e: [m.value for m in e], name="document_type"),
        nullable=False,
    )
    document_id = Column(String(36), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(64), nullable=True)
    unit_price = Column(Numeric(18, 2), nullable=True)
    amount = Column(Numeric(18, 2), nullable=True)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    recipient_name = Column(String(255), nullable=True)
    tax_id = Column(String(64), nullable=True)


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    recipient_name = Column(String(255), nullable=True)
    tax_id = Column(String(64), nullable=True)


DOCUMENT_MODELS: dict[DocumentType, type[FinancialDocumentMixin]] = {
    DocumentType.INVOICE: Invoice,
    DocumentType.PURCHASE_ORDER: PurchaseOrder,
}
