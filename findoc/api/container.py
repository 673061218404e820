"""Wiring of repositories, adapters and orchestrators for the API process."""

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from findoc.analysis.base import AnalysisProvider
from findoc.analysis.dispatch import AnalysisDispatcher, InProcessDispatcher, QueueDispatcher
from findoc.analysis.factory import create_analysis_provider
from findoc.analysis.worker import AnalysisDependencies, AnalysisWorker
from findoc.auth.service import PartnerAuthenticator
from findoc.db.models import Customer, Vendor
from findoc.db.repository import DocumentRepository, ItemRepository, PartnerRepository, PartyRepository
from findoc.db.session import create_engine, create_session_factory
from findoc.deletion.orchestrator import DeletionDependencies, DeletionOrchestrator
from findoc.documents.query import DocumentQueryService, QueryDependencies
from findoc.ingestion.orchestrator import IngestionDependencies, IngestionOrchestrator
from findoc.shared.config import Settings
from findoc.storage.service import StorageService
from findoc.validation.pdf import PdfUploadValidator

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    storage: StorageService
    provider: AnalysisProvider
    dispatcher: AnalysisDispatcher
    authenticator: PartnerAuthenticator
    ingestion: IngestionOrchestrator
    deletion: DeletionOrchestrator
    queries: DocumentQueryService

    async def check_database(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database readiness check failed: {e}")
            return False

    async def close(self) -> None:
        await self.dispatcher.drain()
        await self.dispatcher.close()
        await self.provider.close()
        await self.engine.dispose()


async def build_container(settings: Settings) -> ServiceContainer:
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    storage = StorageService(settings)
    provider = create_analysis_provider(settings)
    documents = DocumentRepository(session_factory)
    items = ItemRepository(session_factory)
    customers = PartyRepository(session_factory, Customer)
    vendors = PartyRepository(session_factory, Vendor)

    dispatcher: AnalysisDispatcher
    if settings.analysis_dispatch == "queue":
        dispatcher = await QueueDispatcher.connect(settings)
    else:
        worker = AnalysisWorker(
            AnalysisDependencies(
                provider=provider,
                storage=storage,
                documents=documents,
                items=items,
                customers=customers,
                vendors=vendors,
            )
        )
        dispatcher = InProcessDispatcher(worker)
    logger.info(f"Analysis dispatch: {settings.analysis_dispatch}")

    return ServiceContainer(
        settings=settings,
        engine=engine,
        storage=storage,
        provider=provider,
        dispatcher=dispatcher,
        authenticator=PartnerAuthenticator(PartnerRepository(session_factory)),
        ingestion=IngestionOrchestrator(
            IngestionDependencies(
                settings=settings,
                validator=PdfUploadValidator(settings),
                storage=storage,
                documents=documents,
                dispatcher=dispatcher,
            )
        ),
        deletion=DeletionOrchestrator(
            DeletionDependencies(settings=settings, storage=storage, documents=documents)
        ),
        queries=DocumentQueryService(
            QueryDependencies(
                documents=documents,
                items=items,
                customers=customers,
                vendors=vendors,
                storage=storage,
            )
        ),
    )
