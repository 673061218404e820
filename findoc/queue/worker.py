"""arq worker runner.

Run with: python -m findoc.queue.worker

This module configures and runs the analysis worker.
"""

import logging

from arq import run_worker

from findoc.queue.tasks import WorkerSettings, get_redis_settings
from findoc.shared.config import get_settings
from findoc.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the arq worker."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(f"Starting worker with Redis: {settings.redis_url}")
    logger.info(f"Max jobs: {settings.queue_max_jobs}")
    logger.info(f"Job timeout: {settings.queue_job_timeout}s")

    # Update worker settings from config
    WorkerSettings.redis_settings = get_redis_settings(settings)
    WorkerSettings.max_jobs = settings.queue_max_jobs
    WorkerSettings.job_timeout = settings.queue_job_timeout

    run_worker(WorkerSettings)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
