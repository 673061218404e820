"""Abstract base class for document analysis providers.

Enables switching between analysis backends while keeping one interface
for the analysis worker.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from typing import Any

from findoc.documents.models import DocumentType
from findoc.shared.config import Settings


class AnalysisProvider(ABC):
    """Abstract base class for OCR/analysis providers.

    ``analyze`` either returns the raw structured extraction as a plain dict
    or raises ``AnalysisProviderError``.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    async def analyze(self, source: bytes | str, document_type: DocumentType) -> dict[str, Any]:
        """Analyze a document.

        Args:
            source: Raw PDF bytes or a URL the provider can fetch
            document_type: Kind of document, selects the provider model

        Returns:
            Raw extraction result as a JSON-serializable dict

        Raises:
            AnalysisProviderError: On timeout, provider error or unusable result
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics."""
        pass

    async def close(self) -> None:
        """Release network resources. Default is a no-op."""
        return None
