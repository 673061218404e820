"""Analysis provider construction from settings."""

import logging

from findoc.analysis.azure_provider import AzureDocumentAnalyzer
from findoc.analysis.base import AnalysisProvider
from findoc.shared.config import Settings

logger = logging.getLogger(__name__)


def create_analysis_provider(settings: Settings) -> AnalysisProvider:
    """Create the provider named by ``settings.analysis_provider``.

    An unconfigured provider is still returned; its calls fail and the
    affected documents end up ``Failed``.
    """
    provider = AzureDocumentAnalyzer(settings)
    if not provider.is_available():
        logger.warning(
            f"Analysis provider '{settings.analysis_provider}' is not fully available. "
            f"Check configuration (endpoint, key)."
        )

    logger.info(f"Created analysis provider: {provider.provider_name}")
    return provider
