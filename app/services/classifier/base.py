"""
Issue Classifier Base Interface.

Defines the contract for categorization providers. A provider turns a
citizen's description (and optional photos) into a category from
ISSUE_CATEGORIES plus a concise title.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

ISSUE_CATEGORIES = ["Pothole", "Garbage", "Streetlight", "Graffiti", "Flooding", "Damaged Signage", "Other"]
FALLBACK_CATEGORY = "Other"


class ImagePayload:
    """Photo bytes handed to a classifier alongside the description."""

    def __init__(self, data: bytes, mime_type: str):
        self.data = data
        self.mime_type = mime_type


class Categorization:
    """
    Standardized classifier response.
    """

    def __init__(self, category: str, title: str, model_name: str):
        self.category = category if category in ISSUE_CATEGORIES else FALLBACK_CATEGORY
        self.title = (title or "").strip() or "Issue Report"
        self.model_name = model_name


class IssueClassifier(ABC):
    """
    Abstract base class for classifiers.
    """

    @abstractmethod
    def is_enabled(self) -> bool:
        """
        Returns:
            True if provider is configured and ready, False otherwise
        """
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """
        Returns:
            Dict with 'name' and 'version' keys
        """
        pass

    @abstractmethod
    def categorize(self, description: str, images: Optional[List[ImagePayload]] = None) -> Categorization:
        """
        Categorize a citizen report.

        Unlike advisory enrichment, categorization is a prerequisite of
        issue creation: providers raise ExternalDependencyError when they
        cannot answer, and the issue is not created.

        Args:
            description: The citizen's description
            images: Optional photos to ground the classification

        Returns:
            Categorization with a category from ISSUE_CATEGORIES
        """
        pass
