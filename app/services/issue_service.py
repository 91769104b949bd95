"""
Issue service - the lifecycle engine's operations.

Every operation takes the calling Actor (resolved from the external
identity credential) and runs in the same order:
1. Load the record (NotFoundError)
2. Access scoping (UnauthorizedError)
3. State machine / party rules (InvalidTransitionError, UnauthorizedError, ValidationError)
4. One atomic merge into the store

Steps 2-3 run again inside the atomic merge against the freshest record,
so a validation failure never leaves a partial write behind.
"""

from typing import List, Optional
import logging

from app.core.exceptions import InvalidTransitionError, NotFoundError, UnauthorizedError, ValidationError
from app.core.settings import settings
from app.models.issue import Issue, IssueStatus, Location, TransitionOptions
from app.models.user import Actor, UserRole
from app.services.access_scope import (
    Intent,
    ListScope,
    can_view,
    check_access,
    reporter_search_predicate,
    scan_filters,
)
from app.services.assignment import find_nearest_worker
from app.services.classifier import ImagePayload, IssueClassifier, get_classifier
from app.services.comment_service import append_comment, build_comment
from app.services.photo_storage import PhotoStorage, PhotoUpload, get_photo_storage, validate_photos
from app.services.status_workflow import StatusWorkflowEngine
from app.services.user_service import UserService, get_user_service
from app.stores.base import IssueStore
from app.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 4000


class IssueService:
    def __init__(
        self,
        store: Optional[IssueStore] = None,
        users: Optional[UserService] = None,
        classifier: Optional[IssueClassifier] = None,
        photo_storage: Optional[PhotoStorage] = None,
    ):
        if store is None:
            from app.config.firebase import get_issue_store
            store = get_issue_store()
        self.store = store
        self.users = users or get_user_service()
        self.classifier = classifier or get_classifier()
        self.photo_storage = photo_storage or get_photo_storage()
        self.workflow = StatusWorkflowEngine()

    def create_issue(
        self,
        actor: Actor,
        description: str,
        photos: List[PhotoUpload],
        location: Location,
    ) -> Issue:
        """
        File a new issue for the calling citizen.

        Flow:
        1. Validate input and photos
        2. Categorize (external classifier)
        3. Upload photos (external blob store)
        4. Resolve the nearest located worker
        5. Create the record

        Steps 2 and 3 must succeed before anything is written; their
        failures propagate as ExternalDependencyError and no issue exists.
        """
        if actor.role != UserRole.CITIZEN:
            raise UnauthorizedError("Only citizens can report issues")
        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        photos = list(photos or [])
        validate_photos(photos)

        categorization = self.classifier.categorize(
            description,
            [ImagePayload(photo.data, photo.content_type) for photo in photos],
        )
        model = self.classifier.get_model_info()
        logger.info(
            f"Categorized report from {actor.email} as {categorization.category} "
            f"(model: {model['name']} v{model['version']})"
        )

        photo_urls = [self.photo_storage.upload(photo) for photo in photos]
        if not photo_urls:
            photo_urls = [settings.PLACEHOLDER_PHOTO_URL]

        worker = find_nearest_worker(location, self.users.located_workers())

        issue_data = {
            "title": categorization.title,
            "description": description,
            "category": categorization.category,
            "photo_urls": photo_urls,
            "location": location.model_dump(),
            "created_at": utcnow(),
            "reporter_id": actor.email,
            "reporter_name": actor.display_name,
            "assigned_to": worker.email if worker else None,
            "assigned_to_name": worker.full_name if worker else None,
            "status_history": [self.workflow.create_status_history_entry(
                from_status="",
                to_status=IssueStatus.PENDING.value,
                changed_by="system",
                note="Issue reported"
            )],
        }
        record = self.store.create(issue_data)
        logger.info(
            f"✅ Issue {record['id']} created by {actor.email} "
            f"({'assigned to ' + worker.email if worker else 'unassigned'})"
        )
        return Issue.from_record(record)

    def list_issues(
        self,
        actor: Actor,
        scope: ListScope = ListScope.ALL,
        status: Optional[IssueStatus] = None,
        search: Optional[str] = None,
    ) -> List[Issue]:
        """
        Issues visible to the actor, newest first.

        Service users never own issues; they must look issues up by search term.
        """
        if actor.role == UserRole.SERVICE or search:
            issues = self.search_issues(actor, search or "")
            if status is not None:
                issues = [issue for issue in issues if issue.status == status]
            return issues

        filters = scan_filters(actor, scope)
        if status is not None:
            filters["status"] = status.value
        records = self.store.scan(lambda record: can_view(actor, record), **filters)
        return self._sorted(records)

    def search_issues(self, actor: Actor, identifier: str) -> List[Issue]:
        """
        Look up issues by reporter email, reporter name or reporter mobile number.

        Raises:
            UnauthorizedError: Caller is not a Service or Admin user
            ValidationError: Empty identifier
        """
        if actor.role not in (UserRole.SERVICE, UserRole.ADMIN):
            raise UnauthorizedError("Only service and admin users can search across reporters")
        identifier = (identifier or "").strip()
        if not identifier:
            raise ValidationError("A search identifier (email, name or mobile number) is required")

        predicate = reporter_search_predicate(identifier, self.users.emails_for_mobile(identifier))
        records = self.store.scan(predicate)
        logger.info(f"{actor.role.value} {actor.email} searched issues for {identifier!r}: {len(records)} found")
        return self._sorted(records)

    def get_issue(self, actor: Actor, issue_id: str) -> Issue:
        record = self.store.get_by_id(issue_id)
        check_access(actor, record, Intent.READ)
        return Issue.from_record(record)

    def allowed_transitions(self, actor: Actor, issue_id: str) -> TransitionOptions:
        record = self.store.get_by_id(issue_id)
        check_access(actor, record, Intent.READ)
        allowed = self.workflow.allowed_for(actor, record) if actor.role != UserRole.SERVICE else []
        return TransitionOptions(
            issue_id=record["id"],
            current_status=IssueStatus(record["status"]),
            allowed=allowed,
        )

    def transition_status(
        self,
        actor: Actor,
        issue_id: str,
        new_status: IssueStatus,
        rating: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Issue:
        """
        Move an issue along the lifecycle.

        Raises:
            NotFoundError, UnauthorizedError, InvalidTransitionError, ValidationError
        """
        record = self.store.get_by_id(issue_id)
        check_access(actor, record, Intent.MUTATE)

        def _mutate(current):
            check_access(actor, current, Intent.MUTATE)
            return self.workflow.validate_and_transition(actor, current, new_status, rating=rating, note=note)

        updated = self.store.apply(issue_id, _mutate)
        last = updated["status_history"][-1]
        logger.info(f"✅ {actor.email} moved issue {issue_id}: {last['from_status']} → {last['to_status']}")
        return Issue.from_record(updated)

    def resolve_issue(self, actor: Actor, issue_id: str, rating: int) -> Issue:
        """Reporter confirms the fix and rates it."""
        return self.transition_status(actor, issue_id, IssueStatus.RESOLVED, rating=rating)

    def assign_worker(self, actor: Actor, issue_id: str, worker_email: str) -> Issue:
        """
        Admin re-assignment. Status is left untouched.

        Raises:
            UnauthorizedError: Caller is not an admin
            NotFoundError: Unknown issue or worker email
            ValidationError: The email belongs to a non-worker
            InvalidTransitionError: The issue is already resolved
        """
        record = self.store.get_by_id(issue_id)
        check_access(actor, record, Intent.MUTATE)
        self.workflow.check_party(actor, record, self.workflow.REASSIGN_PARTIES, "assign workers")

        worker = self.users.get_user(worker_email)
        if worker is None:
            raise NotFoundError(f"Worker {worker_email} not found")
        if worker.role != UserRole.WORKER:
            raise ValidationError(f"{worker.email} is not a worker")

        def _mutate(current):
            if current.get("status") in {s.value for s in self.workflow.TERMINAL_STATES}:
                raise InvalidTransitionError("Resolved issues cannot be reassigned")
            return {"assigned_to": worker.email, "assigned_to_name": worker.full_name}

        updated = self.store.apply(issue_id, _mutate)
        logger.info(f"✅ {actor.email} assigned issue {issue_id} to {worker.email} (was {record.get('assigned_to')})")
        return Issue.from_record(updated)

    def add_comment(self, actor: Actor, issue_id: str, text: str) -> Issue:
        record = self.store.get_by_id(issue_id)
        check_access(actor, record, Intent.MUTATE)
        self.workflow.check_party(actor, record, self.workflow.COMMENT_PARTIES, "comment")

        comment = build_comment(actor, text)
        updated = self.store.apply(issue_id, append_comment(actor, comment))
        logger.info(f"{actor.email} commented on issue {issue_id}")
        return Issue.from_record(updated)

    def _sorted(self, records) -> List[Issue]:
        issues = [Issue.from_record(record) for record in records]
        issues.sort(key=lambda issue: issue.created_at, reverse=True)
        return issues


_issue_service: Optional[IssueService] = None


def get_issue_service() -> IssueService:
    """Get or create IssueService singleton."""
    global _issue_service
    if _issue_service is None:
        _issue_service = IssueService()
    return _issue_service
