"""
Issue categorization plug-ins.

The classifier is an external collaborator of the lifecycle engine:
it must answer before an issue is created.
"""

from app.services.classifier.base import Categorization, ImagePayload, IssueClassifier, ISSUE_CATEGORIES
from app.services.classifier.gemini_provider import GeminiClassifier
from app.services.classifier.mock_provider import MockClassifier
from app.services.classifier.registry import get_classifier

__all__ = [
    "Categorization",
    "ImagePayload",
    "IssueClassifier",
    "ISSUE_CATEGORIES",
    "GeminiClassifier",
    "MockClassifier",
    "get_classifier",
]
