"""Repositories over the async SQLAlchemy session factory.

Each public method opens its own session and commits before returning, so
callers never hold a session across an await on another collaborator.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Delete, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from findoc.db.models import DOCUMENT_MODELS, Customer, Item, Partner, Vendor
from findoc.documents.models import (
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ItemRecord,
    PartnerRecord,
    PartyRecord,
    analysis_fields,
)
from findoc.mapping.schema import LineItemData, PartyData

logger = logging.getLogger(__name__)


def _delete_items(document_type: DocumentType, document_id: str) -> Delete:
    return delete(Item).where(Item.document_type == document_type, Item.document_id == document_id)


class DocumentRepository:
    """Create, read, transition and delete invoices and purchase orders."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_initial(
        self,
        document_type: DocumentType,
        *,
        document_id: str,
        partner_id: str,
        file_url: str,
        original_filename: str,
        file_size: int,
    ) -> DocumentRecord:
        model = DOCUMENT_MODELS[document_type]
        row = model(
            id=document_id,
            status=DocumentStatus.PROCESSING,
            partner_id=partner_id,
            file_url=file_url,
            original_filename=original_filename,
            file_size=file_size,
            is_deleted=False,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return DocumentRecord.model_validate(row)

    async def find_by_id(
        self,
        document_type: DocumentType,
        document_id: str,
        include_deleted: bool = False,
    ) -> DocumentRecord | None:
        model = DOCUMENT_MODELS[document_type]
        stmt = select(model).where(model.id == document_id)
        if not include_deleted:
            stmt = stmt.where(model.is_deleted.is_(False))

        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return DocumentRecord.model_validate(row) if row is not None else None

    async def update(self, document_type: DocumentType, document_id: str, fields: dict[str, Any]) -> bool:
        """Write analysis fields in a single statement.

        Only a ``Processing`` document is written; terminal records are left
        as they are.

        Returns:
            False if the document was not in ``Processing``

        Raises:
            ValueError: If ``fields`` names a column analysis may not write
        """
        allowed = set(analysis_fields(document_type))
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update {sorted(unknown)} on {document_type.value}")
        if not fields:
            return True

        return await self._transition(document_type, document_id, fields)

    async def update_status(
        self,
        document_type: DocumentType,
        document_id: str,
        status: DocumentStatus,
    ) -> bool:
        """Move a ``Processing`` document to a terminal status.

        Returns:
            False if the document was not in ``Processing`` (already terminal,
            deleted or missing), in which case nothing is written.
        """
        return await self._transition(document_type, document_id, {"status": status})

    async def mark_failed(self, document_type: DocumentType, document_id: str) -> bool:
        """Set ``Failed``, clearing every analysis column and any line items.

        The status flip and the item removal commit in one transaction.
        """
        values: dict[str, Any] = {name: None for name in analysis_fields(document_type)}
        values["status"] = DocumentStatus.FAILED
        return await self._transition(document_type, document_id, values, clear_items=True)

    async def _transition(
        self,
        document_type: DocumentType,
        document_id: str,
        values: dict[str, Any],
        clear_items: bool = False,
    ) -> bool:
        model = DOCUMENT_MODELS[document_type]
        stmt = (
            update(model)
            .where(model.id == document_id)
            .where(model.status == DocumentStatus.PROCESSING)
            .values(**values)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            changed = result.rowcount == 1
            if changed and clear_items:
                await session.execute(_delete_items(document_type, document_id))
            await session.commit()
            return changed

    async def delete(
        self,
        document_type: DocumentType,
        document_id: str,
        permanent: bool = False,
    ) -> bool:
        """Soft delete by default; ``permanent`` removes the row and its items.

        Returns:
            True if a visible document was deleted
        """
        model = DOCUMENT_MODELS[document_type]
        async with self._session_factory() as session:
            if permanent:
                await session.execute(_delete_items(document_type, document_id))
                result = await session.execute(delete(model).where(model.id == document_id))
            else:
                result = await session.execute(
                    update(model)
                    .where(model.id == document_id)
                    .where(model.is_deleted.is_(False))
                    .values(is_deleted=True, deleted_at=datetime.now(timezone.utc))
                )
            await session.commit()
            return result.rowcount == 1


class ItemRepository:
    """Line items keyed by (document_type, document_id)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_document_item(
        self,
        document_type: DocumentType,
        document_id: str,
        item: LineItemData,
    ) -> ItemRecord:
        row = Item(
            id=str(uuid.uuid4()),
            document_type=document_type,
            document_id=document_id,
            description=item.description,
            quantity=item.quantity,
            unit=item.unit,
            unit_price=item.unit_price,
            amount=item.amount,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            return ItemRecord.model_validate(row)

    async def find_by_document(self, document_type: DocumentType, document_id: str) -> list[ItemRecord]:
        stmt = select(Item).where(Item.document_type == document_type, Item.document_id == document_id)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [ItemRecord.model_validate(row) for row in rows]


class PartyRepository:
    """Customers or vendors, depending on the model passed in."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[Customer] | type[Vendor],
    ) -> None:
        self._session_factory = session_factory
        self._model = model

    async def find_by_id(self, party_id: str) -> PartyRecord | None:
        async with self._session_factory() as session:
            row = await session.get(self._model, party_id)
            return PartyRecord.model_validate(row) if row is not None else None

    async def find_by_attributes(self, data: PartyData) -> PartyRecord | None:
        """Match on name, plus tax_id and address when present."""
        stmt = select(self._model).where(self._model.name == data.name)
        if data.tax_id:
            stmt = stmt.where(self._model.tax_id == data.tax_id)
        if data.address:
            stmt = stmt.where(self._model.address == data.address)

        async with self._session_factory() as session:
            row = (await session.execute(stmt.limit(1))).scalars().first()
            return PartyRecord.model_validate(row) if row is not None else None

    async def create(self, data: PartyData) -> PartyRecord:
        row = self._model(
            id=str(uuid.uuid4()),
            name=data.name,
            address=data.address,
            recipient_name=data.recipient_name,
            tax_id=data.tax_id,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            return PartyRecord.model_validate(row)

    async def find_or_create(self, data: PartyData) -> PartyRecord:
        existing = await self.find_by_attributes(data)
        if existing is not None:
            return existing
        created = await self.create(data)
        logger.info(f"Created {self._model.__tablename__[:-1]} {created.id} ({created.name})")
        return created


class PartnerRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_client_id(self, client_id: str) -> PartnerRecord | None:
        stmt = select(Partner).where(Partner.client_id == client_id)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return PartnerRecord.model_validate(row) if row is not None else None

    async def create(self, name: str, client_id: str, client_secret_hash: str) -> PartnerRecord:
        row = Partner(
            id=str(uuid.uuid4()),
            name=name,
            client_id=client_id,
            client_secret_hash=client_secret_hash,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            return PartnerRecord.model_validate(row)
