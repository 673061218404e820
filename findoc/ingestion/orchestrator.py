"""Document submission: validate, store, record, then analyze in background.

Validation, storage upload and record creation share one time budget
(``Settings.ingestion_timeout_seconds``). Analysis is dispatched only after
the record exists, and ``submit`` returns without waiting for it.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass

from pydantic import BaseModel

from findoc.analysis.dispatch import AnalysisDispatcher
from findoc.analysis.worker import AnalysisJob
from findoc.api import metrics
from findoc.db.repository import DocumentRepository
from findoc.documents.models import DocumentRecord, DocumentStatus, DocumentType
from findoc.shared.config import Settings
from findoc.shared.errors import (
    AuthError,
    DocumentServiceError,
    GatewayTimeoutError,
    InternalError,
    ValidationError,
)
from findoc.storage.service import StorageService
from findoc.validation.pdf import PDF_MEDIA_TYPE, PdfUploadValidator, ValidatedUpload

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    id: str
    status: DocumentStatus
    message: str


@dataclass
class IngestionDependencies:
    settings: Settings
    validator: PdfUploadValidator
    storage: StorageService
    documents: DocumentRepository
    dispatcher: AnalysisDispatcher
    logger: logging.Logger = logger


class IngestionOrchestrator:
    def __init__(self, deps: IngestionDependencies) -> None:
        self.deps = deps

    async def submit(
        self,
        file_bytes: bytes | None,
        filename: str | None,
        mime_type: str | None,
        partner_id: str | None,
        document_type: DocumentType,
        password: str | None = None,
    ) -> SubmissionResult:
        """Accept a document for analysis.

        Args:
            file_bytes: Raw upload
            filename: Original filename
            mime_type: Declared content type
            partner_id: Authenticated owner
            document_type: Invoice or purchase order
            password: Password for an encrypted PDF

        Returns:
            SubmissionResult with the new id and ``Processing`` status

        Raises:
            AuthError: No partner
            ValidationError: Missing file or failed validation
            PayloadTooLargeError: Upload too large
            UnsupportedMediaTypeError: Not a PDF
            InternalError: Storage upload or record creation failed
            GatewayTimeoutError: Time budget exceeded, outcome unknown
        """
        if not partner_id:
            raise AuthError()
        if not file_bytes or not filename:
            raise ValidationError("No file uploaded")

        log = self.deps.logger
        kind = document_type.value
        timeout = self.deps.settings.ingestion_timeout_seconds
        metrics.document_upload_size_bytes.observe(len(file_bytes))

        try:
            record, upload = await asyncio.wait_for(
                self._store(file_bytes, filename, mime_type, partner_id, document_type, password),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            log.error(f"{kind} submission from partner {partner_id} exceeded {timeout}s")
            metrics.documents_submitted_total.labels(document_type=kind, outcome="timeout").inc()
            raise GatewayTimeoutError() from e
        except DocumentServiceError as e:
            outcome = "error" if isinstance(e, InternalError) else "rejected"
            metrics.documents_submitted_total.labels(document_type=kind, outcome=outcome).inc()
            raise

        job = AnalysisJob(
            document_id=record.id,
            document_type=document_type,
            partner_id=partner_id,
            content=upload.content,
            file_url=record.file_url,
        )
        try:
            await self.deps.dispatcher.dispatch(job)
        except Exception as e:
            log.exception(f"Could not start analysis for {record.id}")
            await self.deps.documents.mark_failed(document_type, record.id)
            metrics.documents_submitted_total.labels(document_type=kind, outcome="error").inc()
            raise InternalError("Failed to start document analysis") from e

        metrics.documents_submitted_total.labels(document_type=kind, outcome="accepted").inc()
        log.info(f"{kind} {record.id} accepted for partner {partner_id} ({upload.page_count} pages)")
        return SubmissionResult(
            id=record.id,
            status=record.status,
            message=f"{document_type.label} upload initiated",
        )

    async def _store(
        self,
        file_bytes: bytes,
        filename: str,
        mime_type: str | None,
        partner_id: str,
        document_type: DocumentType,
        password: str | None,
    ) -> tuple[DocumentRecord, ValidatedUpload]:
        log = self.deps.logger

        upload = await asyncio.to_thread(
            self.deps.validator.validate, file_bytes, mime_type, filename, password
        )

        object_name = f"{document_type.storage_prefix}/{uuid.uuid4()}.pdf"
        stored = await asyncio.to_thread(
            self.deps.storage.upload_bytes, upload.content, object_name, PDF_MEDIA_TYPE
        )
        if not stored.success or not stored.url:
            log.error(f"Storage upload failed for {object_name}: {stored.error}")
            raise InternalError("Failed to upload file")

        try:
            record = await self.deps.documents.create_initial(
                document_type,
                document_id=str(uuid.uuid4()),
                partner_id=partner_id,
                file_url=stored.url,
                original_filename=filename,
                file_size=len(file_bytes),
            )
        except Exception as e:
            log.exception(f"Failed to create {document_type.value} record for {object_name}")
            cleanup = await asyncio.to_thread(self.deps.storage.delete_object, object_name)
            if not cleanup.success:
                log.warning(f"Orphaned object {object_name}: {cleanup.error}")
            raise InternalError("Failed to create document record") from e

        return record, upload
