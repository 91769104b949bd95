"""
Gemini Classifier - Google Gemini over its REST API.

Requires GEMINI_API_KEY in environment variables. Any network, HTTP or
parsing failure is raised as ExternalDependencyError so that issue
creation aborts without persisting anything.
"""

from app.core.exceptions import ExternalDependencyError
from app.core.settings import settings
from app.services.classifier.base import (
    ISSUE_CATEGORIES,
    Categorization,
    ImagePayload,
    IssueClassifier,
)
from typing import Dict, List, Optional
import base64
import json
import logging
import requests

logger = logging.getLogger(__name__)


class GeminiClassifier(IssueClassifier):
    """
    Google Gemini provider for issue categorization.
    """

    MODEL_VERSION = "v1beta"
    API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            logger.info(f"✅ Gemini classifier initialized: {self.model}")
        else:
            logger.info("⚠️ Gemini classifier disabled: No API key configured")

    def is_enabled(self) -> bool:
        return self.enabled

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.model,
            "version": self.MODEL_VERSION
        }

    def categorize(self, description: str, images: Optional[List[ImagePayload]] = None) -> Categorization:
        if not self.enabled:
            raise ExternalDependencyError("Gemini classifier is not configured")

        payload = self._build_payload(description, images or [])
        response_data = self._call_gemini_api(payload)
        result = self._parse_gemini_response(response_data)

        categorization = Categorization(
            category=result.get("category", ""),
            title=result.get("title", ""),
            model_name=self.model,
        )
        if categorization.category != result.get("category"):
            logger.info(f"Gemini returned unknown category {result.get('category')!r}, using {categorization.category}")
        return categorization

    def _build_prompt(self, description: str, with_images: bool) -> str:
        basis = "the description and image(s)" if with_images else "ONLY the following description"
        return (
            "Analyze the user's report about a civic issue. "
            f"Based on {basis}, categorize it into one of the following: {', '.join(ISSUE_CATEGORIES)}. "
            "Also, create a concise title for the report.\n\n"
            f"User Description: \"{description}\"\n\n"
            "Return a JSON object with 'category' and 'title' keys."
        )

    def _build_payload(self, description: str, images: List[ImagePayload]) -> Dict:
        parts = [
            {"inline_data": {"mime_type": image.mime_type, "data": base64.b64encode(image.data).decode("ascii")}}
            for image in images
        ]
        parts.append({"text": self._build_prompt(description, bool(images))})
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {
                    "type": "OBJECT",
                    "properties": {
                        "category": {
                            "type": "STRING",
                            "description": f"The category of the issue. Must be one of: {', '.join(ISSUE_CATEGORIES)}."
                        },
                        "title": {"type": "STRING", "description": "A concise title for the issue report."},
                    },
                    "required": ["category", "title"],
                },
            },
        }

    def _call_gemini_api(self, payload: Dict) -> Dict:
        url = f"{self.API_BASE_URL}/{self.model}:generateContent"
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Gemini API call failed: {e}")
            raise ExternalDependencyError(f"Issue classifier unavailable: {e}")
        except ValueError as e:
            raise ExternalDependencyError(f"Issue classifier returned invalid JSON: {e}")

    def _parse_gemini_response(self, response_data: Dict) -> Dict:
        """Pull the JSON document out of the first candidate."""
        try:
            text = response_data["candidates"][0]["content"]["parts"][0]["text"]
            parsed = json.loads(text.strip())
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            raise ExternalDependencyError(f"Issue classifier returned an unexpected response: {e}")
        if not isinstance(parsed, dict):
            raise ExternalDependencyError("Issue classifier returned an unexpected response")
        return parsed
