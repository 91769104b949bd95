"""
Lifecycle Engine Tests
======================
IssueService end to end against the in-memory stores: creation with
auto-assignment, transitions, reassignment, comments, listing and search.
"""
import logging
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import (
    ExternalDependencyError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.settings import settings
from app.models.issue import IssueStatus, Location
from app.services.access_scope import ListScope
from app.services.classifier import MockClassifier
from app.services.issue_service import IssueService
from app.services.photo_storage import InMemoryPhotoStorage, PhotoUpload
from app.services.user_service import UserService
from app.stores.memory_store import MemoryUserStore
from tests.conftest import (
    ADMIN,
    CITIZEN_A,
    CITIZEN_B,
    ISSUE_LOCATION,
    SERVICE,
    WORKER_FAR,
    WORKER_NEAR,
    WORKER_OTHER,
    WORKER_W,
)


# ===========================================================================
# 1. Walkthroughs
# ===========================================================================
def test_report_assign_work_review_and_resolve(service):
    issue = service.create_issue(
        CITIZEN_A, "Deep pothole in the left lane. Cars are swerving around it.", [], ISSUE_LOCATION
    )
    assert issue.status == IssueStatus.PENDING
    assert issue.assigned_to == WORKER_NEAR
    assert issue.assigned_to_name == "Walt Worker"
    assert issue.reporter_id == CITIZEN_A.email
    assert issue.reporter_name == "Alice Reporter"

    service.transition_status(ADMIN, issue.id, IssueStatus.IN_PROGRESS)
    service.transition_status(ADMIN, issue.id, IssueStatus.FOR_REVIEW)
    resolved = service.resolve_issue(CITIZEN_A, issue.id, rating=4)

    assert resolved.status == IssueStatus.RESOLVED
    assert resolved.rating == 4
    assert resolved.assigned_to == WORKER_NEAR
    assert [(e.from_status, e.to_status) for e in resolved.status_history] == [
        ("", "Pending"),
        ("Pending", "In Progress"),
        ("In Progress", "For Review"),
        ("For Review", "Resolved"),
    ]


def test_other_citizen_cannot_fetch_issue(service, issue):
    with pytest.raises(UnauthorizedError):
        service.get_issue(CITIZEN_B, issue.id)


def test_reassign_to_unknown_worker_keeps_assignee(service, issue):
    with pytest.raises(NotFoundError):
        service.assign_worker(ADMIN, issue.id, "ghost@x.com")
    assert service.get_issue(ADMIN, issue.id).assigned_to == WORKER_NEAR


# ===========================================================================
# 2. Creation
# ===========================================================================
class TestCreate:

    def test_category_title_and_placeholder_photo(self, issue):
        assert issue.category == "Pothole"
        assert issue.title == "Deep pothole in the left lane"
        assert issue.photo_urls == [settings.PLACEHOLDER_PHOTO_URL]
        assert issue.comments == []
        assert issue.rating is None
        assert issue.created_at.tzinfo is not None

    def test_photos_are_uploaded(self, service, photo_storage):
        photos = [PhotoUpload("crack.jpg", "image/jpeg", b"\xff\xd8\xff fake jpeg")]
        issue = service.create_issue(CITIZEN_A, "Garbage piling up", photos, ISSUE_LOCATION)
        assert len(issue.photo_urls) == 1
        assert issue.photo_urls[0].startswith("memory://issues/")
        assert issue.photo_urls[0].endswith(".jpg")
        assert len(photo_storage.blobs) == 1

    def test_non_image_photo_rejected(self, service, issue_store):
        photos = [PhotoUpload("notes.pdf", "application/pdf", b"%PDF")]
        with pytest.raises(ValidationError):
            service.create_issue(CITIZEN_A, "Broken sign", photos, ISSUE_LOCATION)
        assert issue_store.scan() == []

    def test_too_many_photos_rejected(self, service):
        photos = [PhotoUpload(f"{i}.png", "image/png", b"png") for i in range(settings.MAX_PHOTOS_PER_ISSUE + 1)]
        with pytest.raises(ValidationError):
            service.create_issue(CITIZEN_A, "Graffiti on the wall", photos, ISSUE_LOCATION)

    def test_empty_description_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create_issue(CITIZEN_A, "   ", [], ISSUE_LOCATION)

    @pytest.mark.parametrize("actor", [ADMIN, WORKER_W, SERVICE])
    def test_only_citizens_report(self, service, actor):
        with pytest.raises(UnauthorizedError):
            service.create_issue(actor, "Streetlight out", [], ISSUE_LOCATION)

    def test_unassigned_when_no_located_workers(self, issue_store, db):
        users = UserService(MemoryUserStore(db))
        svc = IssueService(issue_store, users, MockClassifier(), InMemoryPhotoStorage())
        issue = svc.create_issue(CITIZEN_A, "Flooded underpass", [], ISSUE_LOCATION)
        assert issue.assigned_to is None
        assert issue.assigned_to_name is None
        assert issue.status == IssueStatus.PENDING

    def test_classifier_failure_persists_nothing(self, issue_store, users, photo_storage):
        classifier = MagicMock()
        classifier.categorize.side_effect = ExternalDependencyError("classifier down")
        svc = IssueService(issue_store, users, classifier, photo_storage)
        with pytest.raises(ExternalDependencyError):
            svc.create_issue(CITIZEN_A, "Pothole", [PhotoUpload("a.jpg", "image/jpeg", b"x")], ISSUE_LOCATION)
        assert issue_store.scan() == []
        assert photo_storage.blobs == {}

    def test_upload_failure_persists_nothing(self, issue_store, users):
        storage = MagicMock()
        storage.upload.side_effect = ExternalDependencyError("bucket unavailable")
        svc = IssueService(issue_store, users, MockClassifier(), storage)
        with pytest.raises(ExternalDependencyError):
            svc.create_issue(CITIZEN_A, "Pothole", [PhotoUpload("a.jpg", "image/jpeg", b"x")], ISSUE_LOCATION)
        assert issue_store.scan() == []


# ===========================================================================
# 3. Transitions
# ===========================================================================
class TestTransitions:

    def test_assigned_worker_moves_to_review(self, service, issue):
        service.transition_status(WORKER_W, issue.id, IssueStatus.IN_PROGRESS)
        updated = service.transition_status(WORKER_W, issue.id, IssueStatus.FOR_REVIEW, note="patched")
        assert updated.status == IssueStatus.FOR_REVIEW
        assert updated.status_history[-1].changed_by == WORKER_NEAR
        assert updated.status_history[-1].note == "patched"

    def test_other_worker_is_unauthorized(self, service, issue):
        with pytest.raises(UnauthorizedError):
            service.transition_status(WORKER_OTHER, issue.id, IssueStatus.IN_PROGRESS)
        assert service.get_issue(ADMIN, issue.id).status == IssueStatus.PENDING

    def test_worker_cannot_close(self, service, issue_for_review):
        with pytest.raises(UnauthorizedError):
            service.transition_status(WORKER_W, issue_for_review.id, IssueStatus.RESOLVED)

    def test_reporter_cannot_resolve_pending_issue(self, service, issue):
        with pytest.raises(ValidationError):
            service.resolve_issue(CITIZEN_A, issue.id, rating=5)

    def test_bad_rating_leaves_issue_in_review(self, service, issue_for_review):
        with pytest.raises(ValidationError):
            service.resolve_issue(CITIZEN_A, issue_for_review.id, rating=6)
        current = service.get_issue(CITIZEN_A, issue_for_review.id)
        assert current.status == IssueStatus.FOR_REVIEW
        assert current.rating is None

    def test_second_resolve_fails(self, service, issue_for_review):
        service.resolve_issue(CITIZEN_A, issue_for_review.id, rating=3)
        with pytest.raises(ValidationError):
            service.resolve_issue(CITIZEN_A, issue_for_review.id, rating=5)
        with pytest.raises(InvalidTransitionError):
            service.transition_status(ADMIN, issue_for_review.id, IssueStatus.RESOLVED)
        assert service.get_issue(ADMIN, issue_for_review.id).rating == 3

    def test_admin_closes_pending_without_rating(self, service, issue):
        closed = service.transition_status(ADMIN, issue.id, IssueStatus.RESOLVED, note="duplicate report")
        assert closed.status == IssueStatus.RESOLVED
        assert closed.rating is None

    def test_skip_is_invalid(self, service, issue):
        with pytest.raises(InvalidTransitionError):
            service.transition_status(ADMIN, issue.id, IssueStatus.FOR_REVIEW)

    def test_service_user_is_read_only(self, service, issue):
        with pytest.raises(UnauthorizedError):
            service.transition_status(SERVICE, issue.id, IssueStatus.IN_PROGRESS)

    def test_unknown_issue(self, service):
        with pytest.raises(NotFoundError):
            service.transition_status(ADMIN, "missing", IssueStatus.IN_PROGRESS)

    def test_allowed_transitions(self, service, issue):
        assert service.allowed_transitions(ADMIN, issue.id).allowed == [IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED]
        assert service.allowed_transitions(WORKER_W, issue.id).allowed == [IssueStatus.IN_PROGRESS]
        assert service.allowed_transitions(CITIZEN_A, issue.id).allowed == []
        assert service.allowed_transitions(SERVICE, issue.id).allowed == []
        with pytest.raises(UnauthorizedError):
            service.allowed_transitions(CITIZEN_B, issue.id)


# ===========================================================================
# 4. Reassignment
# ===========================================================================
class TestAssign:

    def test_admin_reassigns_without_touching_status(self, service, issue):
        service.transition_status(ADMIN, issue.id, IssueStatus.IN_PROGRESS)
        updated = service.assign_worker(ADMIN, issue.id, WORKER_FAR)
        assert updated.assigned_to == WORKER_FAR
        assert updated.assigned_to_name == "Fay Faraway"
        assert updated.status == IssueStatus.IN_PROGRESS

    def test_new_assignee_gains_access_and_old_loses_it(self, service, issue):
        service.assign_worker(ADMIN, issue.id, WORKER_FAR)
        service.transition_status(WORKER_OTHER, issue.id, IssueStatus.IN_PROGRESS)
        with pytest.raises(UnauthorizedError):
            service.get_issue(WORKER_W, issue.id)

    def test_non_worker_target_rejected(self, service, issue):
        with pytest.raises(ValidationError):
            service.assign_worker(ADMIN, issue.id, CITIZEN_B.email)
        assert service.get_issue(ADMIN, issue.id).assigned_to == WORKER_NEAR

    def test_only_admin_reassigns(self, service, issue):
        with pytest.raises(UnauthorizedError):
            service.assign_worker(WORKER_W, issue.id, WORKER_FAR)

    def test_resolved_issue_cannot_be_reassigned(self, service, issue):
        service.transition_status(ADMIN, issue.id, IssueStatus.RESOLVED)
        with pytest.raises(InvalidTransitionError):
            service.assign_worker(ADMIN, issue.id, WORKER_FAR)


# ===========================================================================
# 5. Comments
# ===========================================================================
class TestComments:

    def test_parties_comment_in_order(self, service, issue):
        service.add_comment(CITIZEN_A, issue.id, "Still there this morning")
        service.add_comment(WORKER_W, issue.id, "  Crew scheduled  ")
        updated = service.add_comment(ADMIN, issue.id, "Thanks both")
        assert [c.text for c in updated.comments] == ["Still there this morning", "Crew scheduled", "Thanks both"]
        assert [c.author_id for c in updated.comments] == [CITIZEN_A.email, WORKER_NEAR, ADMIN.email]
        assert updated.comments[1].author_name == "Walt Worker"
        assert len({c.id for c in updated.comments}) == 3

    def test_comments_do_not_change_status(self, service, issue):
        updated = service.add_comment(CITIZEN_A, issue.id, "Any update?")
        assert updated.status == IssueStatus.PENDING

    @pytest.mark.parametrize("actor", [CITIZEN_B, WORKER_OTHER, SERVICE])
    def test_outsiders_cannot_comment(self, service, issue, actor):
        with pytest.raises(UnauthorizedError):
            service.add_comment(actor, issue.id, "hello")

    def test_blank_comment_rejected(self, service, issue):
        with pytest.raises(ValidationError):
            service.add_comment(CITIZEN_A, issue.id, "   ")
        assert service.get_issue(CITIZEN_A, issue.id).comments == []


# ===========================================================================
# 6. Listing and search
# ===========================================================================
class TestListing:

    @pytest.fixture
    def three_issues(self, service):
        far_away = Location(lat=10.01, lng=10.01)
        first = service.create_issue(CITIZEN_A, "Pothole on 5th", [], ISSUE_LOCATION)
        second = service.create_issue(CITIZEN_B, "Overflowing drain", [], ISSUE_LOCATION)
        third = service.create_issue(CITIZEN_A, "Graffiti on the bridge", [], far_away)
        return first, second, third

    def test_visibility_by_role(self, service, three_issues):
        first, second, third = three_issues
        assert {i.id for i in service.list_issues(CITIZEN_A)} == {first.id, third.id}
        assert {i.id for i in service.list_issues(CITIZEN_B)} == {second.id}
        assert {i.id for i in service.list_issues(WORKER_W)} == {first.id, second.id}
        assert {i.id for i in service.list_issues(WORKER_OTHER)} == {third.id}
        assert len(service.list_issues(ADMIN)) == 3

    def test_newest_first(self, service, three_issues):
        created = [i.created_at for i in service.list_issues(ADMIN)]
        assert created == sorted(created, reverse=True)

    def test_status_filter(self, service, three_issues):
        first = three_issues[0]
        service.transition_status(ADMIN, first.id, IssueStatus.IN_PROGRESS)
        in_progress = service.list_issues(ADMIN, status=IssueStatus.IN_PROGRESS)
        assert [i.id for i in in_progress] == [first.id]

    def test_scope(self, service, three_issues):
        assert service.list_issues(ADMIN, scope=ListScope.REPORTED) == []
        assert service.list_issues(WORKER_W, scope=ListScope.REPORTED) == []
        assert len(service.list_issues(WORKER_W, scope=ListScope.ASSIGNED)) == 2

    def test_service_listing_needs_search_term(self, service, three_issues):
        with pytest.raises(ValidationError):
            service.list_issues(SERVICE)

    def test_search_by_name_email_and_mobile(self, service, three_issues):
        first, second, third = three_issues
        assert {i.id for i in service.search_issues(SERVICE, "alice")} == {first.id, third.id}
        assert {i.id for i in service.search_issues(SERVICE, "BOB@test.com")} == {second.id}
        assert {i.id for i in service.search_issues(SERVICE, "555-010-0200")} == {second.id}
        assert {i.id for i in service.list_issues(SERVICE, search="Reporter")} == {first.id, third.id}

    def test_search_restricted_to_service_and_admin(self, service, three_issues):
        assert len(service.search_issues(ADMIN, "neighbour")) == 1
        with pytest.raises(UnauthorizedError):
            service.search_issues(CITIZEN_A, "bob")
        with pytest.raises(UnauthorizedError):
            service.list_issues(WORKER_W, search="alice")

    def test_service_reads_any_issue(self, service, three_issues):
        assert service.get_issue(SERVICE, three_issues[1].id).reporter_id == CITIZEN_B.email


# ===========================================================================
# 7. Logging
# ===========================================================================
class TestLogging:

    def test_creation_logs_classifier_model(self, service, caplog):
        caplog.set_level(logging.INFO, logger="app.services.issue_service")
        service.create_issue(CITIZEN_A, "Trash bins not emptied for a week", [], ISSUE_LOCATION)
        assert "as Garbage (model: keyword-rules-v1 v1.0.0)" in caplog.text

    def test_transition_log_uses_status_seen_under_the_lock(self, service, issue, caplog):
        caplog.set_level(logging.INFO, logger="app.services.issue_service")
        real_get = service.store.get_by_id

        def _stale_get(issue_id):
            record = real_get(issue_id)
            # Another writer moves the issue between the pre-check read and the merge
            service.store.update(issue_id, {"status": "In Progress"})
            return record

        service.store.get_by_id = _stale_get
        service.transition_status(ADMIN, issue.id, IssueStatus.FOR_REVIEW)
        assert f"moved issue {issue.id}: In Progress → For Review" in caplog.text
