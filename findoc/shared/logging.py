"""Process-wide logging setup.

Called once by each entry point (API app, arq worker). Components get their
logger injected and default to ``logging.getLogger(__name__)``.
"""

import logging

from findoc.shared.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure the root logger from settings."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # azure-core logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)
