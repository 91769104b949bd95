"""
Comment Service - the append-only comment log owned by each issue.

Comments live inside the issue record, so appending is a field merge
computed from the current list under the store's atomic update.
"""

from app.core.exceptions import ValidationError
from app.models.user import Actor
from app.services.status_workflow import StatusWorkflowEngine
from app.utils.firestore_helpers import utcnow
from typing import Dict
import uuid

MAX_COMMENT_LENGTH = 2000


def build_comment(actor: Actor, text: str) -> Dict:
    """Create an immutable comment entry for `actor`."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment text must be at most {MAX_COMMENT_LENGTH} characters")
    return {
        "id": uuid.uuid4().hex[:8],
        "author_id": actor.email,
        "author_name": actor.display_name,
        "text": text,
        "created_at": utcnow(),
    }


def append_comment(actor: Actor, comment: Dict):
    """
    Build the mutator that appends `comment` to an issue.

    The party check runs against the record read inside the atomic
    update, so a reassignment that lands first is honoured.
    """
    def _mutate(current: Dict) -> Dict:
        StatusWorkflowEngine.check_party(actor, current, StatusWorkflowEngine.COMMENT_PARTIES, "comment")
        return {"comments": list(current.get("comments") or []) + [comment]}
    return _mutate
