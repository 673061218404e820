"""Background analysis of a submitted document.

The worker owns the ``Processing -> Analyzed | Failed`` transition. Every
failure is logged and recorded as ``Failed``; only cancellation propagates,
after the document has been marked ``Failed``.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from findoc.analysis.base import AnalysisProvider
from findoc.api import metrics
from findoc.db.repository import DocumentRepository, ItemRepository, PartyRepository
from findoc.documents.models import DocumentStatus, DocumentType
from findoc.mapping.mapper import ResultMapper, get_mapper
from findoc.mapping.schema import MappedDocument, PartyData
from findoc.shared.errors import AnalysisProviderError
from findoc.storage.service import StorageService

logger = logging.getLogger(__name__)


class AnalysisJob(BaseModel):
    """One document to analyze.

    Attributes:
        document_id: Id of the ``Processing`` record
        document_type: Invoice or purchase order
        partner_id: Owner of the document
        content: PDF bytes (preferred)
        file_url: Stored file URL, used when no bytes are passed
    """

    document_id: str
    document_type: DocumentType
    partner_id: str
    content: bytes | None = None
    file_url: str | None = None

    @property
    def source(self) -> bytes | str | None:
        return self.content or self.file_url


def default_mappers() -> dict[DocumentType, ResultMapper]:
    return {document_type: get_mapper(document_type) for document_type in DocumentType}


@dataclass
class AnalysisDependencies:
    provider: AnalysisProvider
    storage: StorageService
    documents: DocumentRepository
    items: ItemRepository
    customers: PartyRepository
    vendors: PartyRepository
    mappers: Mapping[DocumentType, ResultMapper] = field(default_factory=default_mappers)
    logger: logging.Logger = logger


class AnalysisWorker:
    """Analyze, archive, map and persist one document."""

    def __init__(self, deps: AnalysisDependencies) -> None:
        self.deps = deps

    async def run(self, job: AnalysisJob) -> DocumentStatus:
        """Run the pipeline for ``job`` and write its terminal status.

        A cancelled run (arq ``job_timeout``, shutdown) still marks the
        document ``Failed`` before the cancellation propagates.

        Returns:
            The document's terminal status. When another writer already
            resolved the document, the stored status is returned.
        """
        started = time.perf_counter()
        log = self.deps.logger
        log.info(f"Analysis started for {job.document_type.value} {job.document_id}")

        try:
            written = await self._process(job)
        except asyncio.CancelledError:
            log.error(f"Analysis of {job.document_id} was cancelled")
            written = await asyncio.shield(self._fail(job))
            self._record(job, written, time.perf_counter() - started)
            raise

        elapsed = time.perf_counter() - started
        self._record(job, written, elapsed)
        status = written or await self._stored_status(job)
        log.info(f"Analysis finished for {job.document_id}: {status.value} in {elapsed:.2f}s")
        return status

    def _record(self, job: AnalysisJob, written: DocumentStatus | None, elapsed: float) -> None:
        document_type = job.document_type.value
        metrics.analysis_duration_seconds.labels(document_type=document_type).observe(elapsed)
        if written is not None:
            metrics.analysis_outcomes_total.labels(document_type=document_type, status=written.value).inc()

    async def _process(self, job: AnalysisJob) -> DocumentStatus | None:
        log = self.deps.logger

        try:
            if job.source is None:
                raise AnalysisProviderError("No document content or URL to analyze")
            result = await self.deps.provider.analyze(job.source, job.document_type)
        except AnalysisProviderError as e:
            log.error(
                f"Analysis provider failed for {job.document_id} "
                f"(transient={e.transient}, status={e.status_code}): {e}"
            )
            return await self._fail(job)
        except Exception:
            log.exception(f"Unexpected analysis provider error for {job.document_id}")
            return await self._fail(job)

        object_name = f"analysis/{job.document_id}-analysis-{uuid.uuid4()}.json"
        archived = False
        try:
            analysis_json_url = await self._archive(result, object_name)
            archived = True
            await self._persist(job, result, analysis_json_url)
            return await self._write_status(job, DocumentStatus.ANALYZED)
        except Exception:
            log.exception(f"Failed to persist analysis for {job.document_id}")
            written = await self._fail(job)
            if archived:
                await self._discard_archive(object_name)
            return written

    async def _persist(self, job: AnalysisJob, result: dict[str, Any], analysis_json_url: str) -> None:
        mapper = self.deps.mappers[job.document_type]
        mapped: MappedDocument = mapper.map(result, job.partner_id)

        values = mapped.column_values()
        values["analysis_json_url"] = analysis_json_url
        values["customer_id"] = await self._resolve_party(self.deps.customers, mapped.customer, "customer")
        values["vendor_id"] = await self._resolve_party(self.deps.vendors, mapped.vendor, "vendor")
        if not await self.deps.documents.update(job.document_type, job.document_id, values):
            raise RuntimeError(f"{job.document_id} is no longer Processing, analysis discarded")

        for item in mapped.items:
            await self.deps.items.create_document_item(job.document_type, job.document_id, item)
        self.deps.logger.info(f"Saved {len(mapped.items)} items for {job.document_id}")

    async def _archive(self, result: dict[str, Any], object_name: str) -> str:
        stored = await asyncio.to_thread(self.deps.storage.upload_json, result, object_name)
        if not stored.success or not stored.url:
            raise RuntimeError(f"Failed to archive analysis result: {stored.error}")
        return stored.url

    async def _discard_archive(self, object_name: str) -> None:
        removed = await asyncio.to_thread(self.deps.storage.delete_object, object_name)
        if not removed.success:
            self.deps.logger.warning(f"Could not delete archived analysis {object_name}: {removed.error}")

    async def _resolve_party(self, repository: PartyRepository, data: PartyData, kind: str) -> str | None:
        if not data.name:
            return None
        try:
            party = await repository.find_or_create(data)
            return party.id
        except Exception as e:
            self.deps.logger.warning(f"Could not resolve {kind} '{data.name}': {e}")
            return None

    async def _write_status(self, job: AnalysisJob, status: DocumentStatus) -> DocumentStatus | None:
        if not await self.deps.documents.update_status(job.document_type, job.document_id, status):
            self.deps.logger.warning(f"{job.document_id} was not Processing, status left unchanged")
            return None
        return status

    async def _fail(self, job: AnalysisJob) -> DocumentStatus | None:
        try:
            if await self.deps.documents.mark_failed(job.document_type, job.document_id):
                return DocumentStatus.FAILED
            self.deps.logger.warning(f"{job.document_id} was not Processing, status left unchanged")
        except Exception:
            self.deps.logger.exception(f"Could not mark {job.document_id} as Failed")
        return None

    async def _stored_status(self, job: AnalysisJob) -> DocumentStatus:
        try:
            record = await self.deps.documents.find_by_id(job.document_type, job.document_id, include_deleted=True)
        except Exception:
            self.deps.logger.exception(f"Could not read status of {job.document_id}")
            return DocumentStatus.FAILED
        return record.status if record is not None else DocumentStatus.FAILED
