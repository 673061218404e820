"""Launch analysis detached from the submitting request.

``InProcessDispatcher`` runs the worker as an asyncio task in the API
process. ``QueueDispatcher`` hands the job to an arq worker through Redis.
Both guarantee at most one running analysis per document id.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from arq import ArqRedis, create_pool

from findoc.analysis.worker import AnalysisJob, AnalysisWorker
from findoc.queue.tasks import ANALYZE_TASK, get_redis_settings
from findoc.shared.config import Settings
from findoc.shared.errors import ConflictError

logger = logging.getLogger(__name__)


class AnalysisDispatcher(ABC):
    @abstractmethod
    async def dispatch(self, job: AnalysisJob) -> None:
        """Start analysis of ``job`` without waiting for it.

        Raises:
            ConflictError: If analysis of this document is already running
        """
        pass

    async def drain(self) -> None:
        """Wait for locally running analyses. Default is a no-op."""
        return None

    async def close(self) -> None:
        return None


class InProcessDispatcher(AnalysisDispatcher):
    def __init__(self, worker: AnalysisWorker, logger: logging.Logger = logger) -> None:
        self.worker = worker
        self.logger = logger
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def running(self) -> set[str]:
        return {document_id for document_id, task in self._tasks.items() if not task.done()}

    async def dispatch(self, job: AnalysisJob) -> None:
        if job.document_id in self.running:
            raise ConflictError(f"Analysis already running for {job.document_id}")

        task = asyncio.create_task(self._run(job), name=f"analysis-{job.document_id}")
        self._tasks[job.document_id] = task
        task.add_done_callback(lambda done: self._forget(job.document_id, done))

    async def _run(self, job: AnalysisJob) -> None:
        try:
            await self.worker.run(job)
        except Exception:
            self.logger.exception(f"Analysis task for {job.document_id} crashed")

    def _forget(self, document_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(document_id) is task:
            del self._tasks[document_id]

    async def drain(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            self.logger.info(f"Waiting for {len(tasks)} running analyses")
            await asyncio.gather(*tasks, return_exceptions=True)


class QueueDispatcher(AnalysisDispatcher):
    def __init__(self, redis: ArqRedis, logger: logging.Logger = logger) -> None:
        self.redis = redis
        self.logger = logger

    @classmethod
    async def connect(cls, settings: Settings) -> "QueueDispatcher":
        redis = await create_pool(get_redis_settings(settings))
        return cls(redis)

    async def dispatch(self, job: AnalysisJob) -> None:
        queued = await self.redis.enqueue_job(ANALYZE_TASK, job.model_dump(), _job_id=job.document_id)
        if queued is None:
            raise ConflictError(f"Analysis already queued for {job.document_id}")
        self.logger.info(f"Queued analysis job {queued.job_id}")

    async def close(self) -> None:
        await self.redis.close()
