"""
Rule-based classifier - used when no AI provider is configured.

Deterministic keyword matching, no network calls, never fails.
"""

from app.services.classifier.base import Categorization, ImagePayload, IssueClassifier
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

# Checked in order; the first category with a matching keyword wins
KEYWORD_RULES = [
    ("Pothole", ["pothole", "crater", "road damage", "sinkhole", "asphalt"]),
    ("Flooding", ["flood", "waterlog", "water logging", "drain", "overflow", "puddle"]),
    ("Streetlight", ["streetlight", "street light", "lamp", "light pole", "dark street"]),
    ("Graffiti", ["graffiti", "vandal", "spray paint"]),
    ("Garbage", ["garbage", "trash", "litter", "waste", "dump", "rubbish"]),
    ("Damaged Signage", ["sign", "signage", "signpost", "stop sign"]),
]


class MockClassifier(IssueClassifier):
    MODEL_NAME = "keyword-rules-v1"
    MODEL_VERSION = "1.0.0"

    def is_enabled(self) -> bool:
        """Rule-based classifier is always enabled."""
        return True

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.MODEL_NAME,
            "version": self.MODEL_VERSION
        }

    def categorize(self, description: str, images: Optional[List[ImagePayload]] = None) -> Categorization:
        desc_lower = (description or "").lower()

        category = "Other"
        for candidate, keywords in KEYWORD_RULES:
            if any(word in desc_lower for word in keywords):
                category = candidate
                break

        # First sentence makes a neutral title
        title = (description or "").split(".")[0].strip()
        if len(title) > 60:
            title = title[:57] + "..."
        if not title:
            title = "Issue Report"

        return Categorization(category=category, title=title, model_name=self.MODEL_NAME)
