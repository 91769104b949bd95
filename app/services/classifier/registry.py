"""
Classifier Registry - selects the categorization provider from configuration.

Gemini when AI is enabled and an API key is configured, otherwise the
rule-based classifier. A failing Gemini call does not fall back to the
rules: the failure aborts issue creation.
"""

from app.services.classifier.base import IssueClassifier
from app.services.classifier.gemini_provider import GeminiClassifier
from app.services.classifier.mock_provider import MockClassifier
from app.core.settings import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class ClassifierRegistry:
    def __init__(self):
        self.provider: IssueClassifier = self._select_provider()

    def _select_provider(self) -> IssueClassifier:
        if not settings.AI_ENABLED:
            logger.info("⚠️ AI is disabled globally (AI_ENABLED=false), using rule-based classifier")
            return MockClassifier()

        gemini = GeminiClassifier()
        if gemini.is_enabled():
            return gemini

        logger.warning("Gemini API key not found. Using rule-based categorization.")
        return MockClassifier()


# Global registry instance (singleton)
_registry: Optional[ClassifierRegistry] = None


def get_classifier() -> IssueClassifier:
    """Get the configured classifier."""
    global _registry
    if _registry is None:
        _registry = ClassifierRegistry()
    return _registry.provider
