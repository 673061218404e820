"""Authorized removal of an analyzed document and its stored file.

The stored file is deleted before the record. If storage deletion fails the
record is left untouched.
"""

import asyncio
import logging
from dataclasses import dataclass

from pydantic import BaseModel

from findoc.api import metrics
from findoc.db.repository import DocumentRepository
from findoc.documents.models import DocumentStatus, DocumentType
from findoc.shared.config import Settings
from findoc.shared.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)
from findoc.storage.service import StorageService

logger = logging.getLogger(__name__)


class DeletionOutcome(BaseModel):
    message: str
    permanent: bool = False


@dataclass
class DeletionDependencies:
    settings: Settings
    storage: StorageService
    documents: DocumentRepository
    logger: logging.Logger = logger


class DeletionOrchestrator:
    def __init__(self, deps: DeletionDependencies) -> None:
        self.deps = deps

    async def delete_document(
        self,
        partner_id: str | None,
        document_id: str,
        document_type: DocumentType,
        permanent: bool = False,
    ) -> DeletionOutcome:
        """Delete a document owned by ``partner_id``.

        Checks run in order: existence, ownership, status. Soft-deleted
        documents count as missing.

        Raises:
            AuthError: No partner
            ForbiddenError: Not the owner, or permanent deletion is disabled
            NotFoundError: No visible document with this id
            ConflictError: Document is not ``Analyzed``
            InternalError: Storage deletion failed (detail carries the cause)
        """
        if not partner_id:
            raise AuthError()
        if permanent and not self.deps.settings.allow_permanent_delete:
            raise ForbiddenError("Permanent deletion is not enabled")

        log = self.deps.logger
        kind = document_type.value
        label = document_type.label

        record = await self.deps.documents.find_by_id(document_type, document_id)
        if record is None:
            self._count(kind, "rejected")
            raise NotFoundError(f"{label} not found")
        if record.partner_id != partner_id:
            self._count(kind, "rejected")
            raise ForbiddenError(f"Unauthorized: You do not own this {label.lower()}")
        if record.status is not DocumentStatus.ANALYZED:
            self._count(kind, "rejected")
            raise ConflictError(f"{label} cannot be deleted unless it is Analyzed")

        if record.file_url:
            try:
                object_name = self.deps.storage.object_name_from_url(record.file_url)
            except ValueError as e:
                self._count(kind, "storage_error")
                raise InternalError("Failed to delete file from storage", detail=str(e)) from e

            result = await asyncio.to_thread(self.deps.storage.delete_object, object_name)
            if not result.success:
                log.error(f"Storage delete failed for {kind} {document_id}: {result.error}")
                self._count(kind, "storage_error")
                raise InternalError("Failed to delete file from storage", detail=result.error)

        if not await self.deps.documents.delete(document_type, document_id, permanent=permanent):
            # removed by a concurrent request after our read
            self._count(kind, "rejected")
            raise NotFoundError(f"{label} not found")

        self._count(kind, "deleted")
        log.info(f"{kind} {document_id} deleted by partner {partner_id} (permanent={permanent})")
        return DeletionOutcome(message=f"{label} successfully deleted", permanent=permanent)

    @staticmethod
    def _count(kind: str, outcome: str) -> None:
        metrics.deletions_total.labels(document_type=kind, outcome=outcome).inc()
