"""
Status Workflow Engine - strict issue lifecycle state machine.

DESIGN PRINCIPLES:
- Only forward edges listed in TRANSITIONS exist; everything else is rejected
- Each edge names the parties allowed to take it
- Re-applying a transition (e.g. In Progress → In Progress) is rejected, not ignored
- All transitions logged in status_history

Parties are derived from the actor AND the issue: a worker is the
ASSIGNED_WORKER only for issues assigned to them, a citizen is the
REPORTER only for issues they filed.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
import logging

from app.core.exceptions import InvalidTransitionError, UnauthorizedError, ValidationError
from app.models.issue import IssueStatus
from app.models.user import Actor, UserRole
from app.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)


class Party(str, Enum):
    ADMIN = "Admin"
    ASSIGNED_WORKER = "Assigned Worker"
    REPORTER = "Reporter"


MIN_RATING = 1
MAX_RATING = 5


class StatusWorkflowEngine:
    """
    Strict state machine for issue status transitions.

    Rules:
    - Pending → In Progress → For Review → Resolved
    - Admins may close directly from Pending or In Progress (no rating)
    - The reporter closes from For Review only, and must rate 1-5
    - Resolved is terminal
    """

    # {(from_status, to_status): parties allowed}
    TRANSITIONS: Dict[Tuple[IssueStatus, IssueStatus], FrozenSet[Party]] = {
        (IssueStatus.PENDING, IssueStatus.IN_PROGRESS): frozenset({Party.ADMIN, Party.ASSIGNED_WORKER}),
        (IssueStatus.IN_PROGRESS, IssueStatus.FOR_REVIEW): frozenset({Party.ADMIN, Party.ASSIGNED_WORKER}),
        (IssueStatus.PENDING, IssueStatus.RESOLVED): frozenset({Party.ADMIN}),
        (IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED): frozenset({Party.ADMIN}),
        (IssueStatus.FOR_REVIEW, IssueStatus.RESOLVED): frozenset({Party.ADMIN, Party.REPORTER}),
    }

    # Parties whose transition must carry a rating (and the only ones allowed to give one)
    RATING_PARTIES: FrozenSet[Party] = frozenset({Party.REPORTER})

    # Non-status operations gated by the same party model
    COMMENT_PARTIES: FrozenSet[Party] = frozenset({Party.ADMIN, Party.ASSIGNED_WORKER, Party.REPORTER})
    REASSIGN_PARTIES: FrozenSet[Party] = frozenset({Party.ADMIN})

    TERMINAL_STATES: FrozenSet[IssueStatus] = frozenset({IssueStatus.RESOLVED})

    @staticmethod
    def parties_of(actor: Actor, issue: Dict) -> Set[Party]:
        """Which parties the actor plays with respect to this issue."""
        parties = set()
        if actor.role == UserRole.ADMIN:
            parties.add(Party.ADMIN)
        if actor.role == UserRole.WORKER and issue.get("assigned_to") == actor.email:
            parties.add(Party.ASSIGNED_WORKER)
        if actor.role == UserRole.CITIZEN and issue.get("reporter_id") == actor.email:
            parties.add(Party.REPORTER)
        return parties

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is an edge of the table.

        Args:
            from_status: Current status
            to_status: Desired new status

        Returns:
            True if the edge exists, False otherwise (including same-status)
        """
        try:
            edge = (IssueStatus(from_status), IssueStatus(to_status))
        except ValueError:
            return False
        return edge in cls.TRANSITIONS

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        """All statuses reachable in one step from current_status, whoever the actor is."""
        try:
            current = IssueStatus(current_status)
        except ValueError:
            return []
        return [to.value for (frm, to) in cls.TRANSITIONS if frm == current]

    @classmethod
    def allowed_for(cls, actor: Actor, issue: Dict) -> List[IssueStatus]:
        """Statuses this actor may move this issue to right now."""
        current = IssueStatus(issue["status"])
        parties = cls.parties_of(actor, issue)
        return [
            to for (frm, to), allowed in cls.TRANSITIONS.items()
            if frm == current and parties & allowed
        ]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: str,
        to_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for audit trail.

        Args:
            from_status: Previous status ("" at creation)
            to_status: New status
            changed_by: Email of the acting user, or "system"
            note: Optional note explaining the change

        Returns:
            Status history entry dict
        """
        return {
            "from_status": from_status,
            "to_status": to_status,
            "changed_by": changed_by,
            "timestamp": utcnow(),
            "note": note or ""
        }

    @classmethod
    def validate_and_transition(
        cls,
        actor: Actor,
        issue: Dict,
        new_status: str,
        rating: Optional[int] = None,
        note: Optional[str] = None
    ) -> Dict:
        """
        Validate a transition against the current record and build the fields to merge.

        Nothing is written here; the caller merges the returned fields atomically.

        Returns:
            Dict of changed fields: status, status_history and (reporter path) rating

        Raises:
            ValidationError: Bad rating, or the reporter path preconditions fail
            InvalidTransitionError: The edge is not in the table
            UnauthorizedError: The actor plays no party allowed on this edge
        """
        current_status = issue.get("status", IssueStatus.PENDING.value)
        try:
            target = IssueStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown status: {new_status}")

        if actor.role == UserRole.CITIZEN and target == IssueStatus.RESOLVED:
            cls._check_reporter_resolution(actor, issue, rating)

        if not cls.is_valid_transition(current_status, target.value):
            allowed = cls.get_allowed_transitions(current_status)
            logger.warning(f"Rejected transition on issue {issue.get('id')}: {current_status} → {target.value}")
            raise InvalidTransitionError(
                f"Invalid status transition: {current_status} → {target.value}. "
                f"Allowed transitions from {current_status}: {allowed}"
            )

        allowed_parties = cls.TRANSITIONS[(IssueStatus(current_status), target)]
        acting = cls.parties_of(actor, issue) & allowed_parties
        if not acting:
            logger.warning(
                f"Denied: {actor.email} ({actor.role.value}) tried {current_status} → {target.value} "
                f"on issue {issue.get('id')}"
            )
            raise UnauthorizedError(
                f"{actor.role.value} {actor.email} may not move this issue from {current_status} to {target.value}"
            )

        rating_required = bool(acting & cls.RATING_PARTIES)
        if rating is not None and not rating_required:
            raise ValidationError("A rating can only be given by the reporter when confirming the fix")
        if rating_required:
            cls._check_rating(rating)

        history = list(issue.get("status_history") or [])
        history.append(cls.create_status_history_entry(
            from_status=current_status,
            to_status=target.value,
            changed_by=actor.email,
            note=note
        ))

        changes = {"status": target.value, "status_history": history}
        if rating_required:
            changes["rating"] = rating
        return changes

    @classmethod
    def check_party(cls, actor: Actor, issue: Dict, allowed: FrozenSet[Party], action: str):
        """Raise UnauthorizedError unless the actor plays one of `allowed` on this issue."""
        if not cls.parties_of(actor, issue) & allowed:
            logger.warning(f"Denied: {actor.email} ({actor.role.value}) tried to {action} on issue {issue.get('id')}")
            raise UnauthorizedError(f"{actor.role.value} {actor.email} may not {action} on this issue")

    @classmethod
    def _check_reporter_resolution(cls, actor: Actor, issue: Dict, rating: Optional[int]):
        if issue.get("reporter_id") != actor.email:
            raise ValidationError("Only the reporting citizen can resolve the issue")
        if issue.get("status") != IssueStatus.FOR_REVIEW.value:
            raise ValidationError("Issue must be marked 'For Review' before it can be resolved")
        cls._check_rating(rating)

    @staticmethod
    def _check_rating(rating):
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("Rating must be an integer between 1 and 5")
        if rating < MIN_RATING or rating > MAX_RATING:
            raise ValidationError("Rating must be between 1 and 5")
