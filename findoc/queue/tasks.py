"""Async task definitions for document analysis.

Uses arq (async Redis queue) for background task processing when
``APP_ANALYSIS_DISPATCH=queue``. The job id is the document id, so a
document is analyzed by at most one job.

Based on arq documentation:
https://arq-docs.helpmanual.io/
"""

import logging
from typing import Any

from arq.connections import RedisSettings

from findoc.analysis.factory import create_analysis_provider
from findoc.analysis.worker import AnalysisDependencies, AnalysisJob, AnalysisWorker
from findoc.db.models import Customer, Vendor
from findoc.db.repository import DocumentRepository, ItemRepository, PartyRepository
from findoc.db.session import create_engine, create_session_factory
from findoc.shared.config import Settings, get_settings
from findoc.storage.service import StorageService

logger = logging.getLogger(__name__)

ANALYZE_TASK = "analyze_document"


def get_redis_settings(settings: Settings) -> RedisSettings:
    """arq connection settings from ``settings.redis_url``."""
    return RedisSettings.from_dsn(settings.redis_url)


async def analyze_document(ctx: dict[str, Any], job: dict[str, Any]) -> str:
    """Analyze one document.

    Args:
        ctx: arq context (holds the worker built in ``startup``)
        job: ``AnalysisJob`` fields

    Returns:
        Terminal status value
    """
    analysis_job = AnalysisJob.model_validate(job)
    logger.info(f"Processing analysis job for {analysis_job.document_type.value} {analysis_job.document_id}")

    worker: AnalysisWorker = ctx["analysis_worker"]
    status = await worker.run(analysis_job)
    return status.value


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup hook - initialize services.

    Called once when worker starts. Initializes shared services
    to avoid re-creating them for each job.
    """
    logger.info("Initializing worker services...")
    settings = get_settings()
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    provider = create_analysis_provider(settings)

    ctx["settings"] = settings
    ctx["engine"] = engine
    ctx["provider"] = provider
    ctx["analysis_worker"] = AnalysisWorker(
        AnalysisDependencies(
            provider=provider,
            storage=StorageService(settings),
            documents=DocumentRepository(session_factory),
            items=ItemRepository(session_factory),
            customers=PartyRepository(session_factory, Customer),
            vendors=PartyRepository(session_factory, Vendor),
        )
    )
    logger.info("Worker services initialized")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown hook - cleanup resources."""
    logger.info("Worker shutting down...")
    if "provider" in ctx:
        await ctx["provider"].close()
    if "engine" in ctx:
        await ctx["engine"].dispose()


class WorkerSettings:
    """arq worker settings.

    Defines the worker configuration including:
    - Task functions to register
    - Redis connection settings
    - Job timeout; analysis is never retried automatically
    """

    functions = [analyze_document]
    on_startup = startup
    on_shutdown = shutdown

    # These will be set from environment
    redis_settings = None
    max_jobs = 10
    job_timeout = 600
    max_tries = 1
