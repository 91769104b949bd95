"""
Firestore store tests with a mocked client. No network access.
"""
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from app.core.exceptions import DuplicateUserError, NotFoundError, ValidationError
from app.stores import firestore_store
from app.stores.firestore_store import FirestoreIssueStore, FirestoreUserStore


def _snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = dict(data) if data is not None else None
    return snapshot


def test_get_by_id_missing():
    db = MagicMock()
    db.collection.return_value.document.return_value.get.return_value = _snapshot("x", None, exists=False)
    with pytest.raises(NotFoundError):
        FirestoreIssueStore(db).get_by_id("x")


def test_get_by_id_adds_id_and_parses_timestamp():
    db = MagicMock()
    db.collection.return_value.document.return_value.get.return_value = _snapshot(
        "abc", {"status": "Pending", "created_at": "2024-03-01T10:00:00+00:00"}
    )
    record = FirestoreIssueStore(db).get_by_id("abc")
    assert record["id"] == "abc"
    assert record["created_at"].year == 2024


def test_create_initializes_lifecycle_fields():
    db = MagicMock()
    doc_ref = db.collection.return_value.document.return_value
    doc_ref.id = "generated"
    record = FirestoreIssueStore(db).create({"title": "t", "status": "Resolved", "rating": 5})
    assert record["id"] == "generated"
    stored = doc_ref.create.call_args[0][0]
    assert stored["status"] == "Pending"
    assert stored["rating"] is None
    assert stored["comments"] == []
    assert "id" not in stored


def test_scan_pushes_equality_filters_down():
    db = MagicMock()
    collection = db.collection.return_value
    query = collection.where.return_value
    query.stream.return_value = [
        _snapshot("1", {"reporter_id": "a@test.com", "status": "Pending"}),
        _snapshot("2", {"reporter_id": "a@test.com", "status": "Resolved"}),
    ]
    records = FirestoreIssueStore(db).scan(lambda r: r["status"] == "Pending", reporter_id="a@test.com")
    collection.where.assert_called_once_with("reporter_id", "==", "a@test.com")
    assert [r["id"] for r in records] == ["1"]


def test_add_user_maps_already_exists():
    db = MagicMock()
    db.collection.return_value.document.return_value.create.side_effect = google_exceptions.AlreadyExists("dup")
    with pytest.raises(DuplicateUserError):
        FirestoreUserStore(db).add({"email": "Walt@Test.com", "role": "Worker"})
    db.collection.return_value.document.assert_called_with("walt@test.com")


def test_update_user_maps_not_found():
    db = MagicMock()
    db.collection.return_value.document.return_value.update.side_effect = google_exceptions.NotFound("gone")
    with pytest.raises(NotFoundError):
        FirestoreUserStore(db).update("ghost@x.com", {"first_name": "G"})


# ---------------------------------------------------------------------------
# Transactional read-modify-write. The decorator is replaced by a
# pass-through so the mutator runs against the mocked transaction directly.
# ---------------------------------------------------------------------------
@pytest.fixture
def transactional_db():
    db = MagicMock()
    with patch.object(firestore_store.firestore, "transactional", lambda fn: fn):
        yield db


def test_apply_merges_only_mutator_fields(transactional_db):
    doc_ref = transactional_db.collection.return_value.document.return_value
    doc_ref.get.return_value = _snapshot("abc", {"status": "Pending", "assigned_to": "w@test.com"})
    transaction = transactional_db.transaction.return_value

    updated = FirestoreIssueStore(transactional_db).apply(
        "abc", lambda current: {"status": "In Progress", "id": "hijack"}
    )

    doc_ref.get.assert_called_once_with(transaction=transaction)
    transaction.update.assert_called_once_with(doc_ref, {"status": "In Progress"})
    assert updated["id"] == "abc"
    assert updated["status"] == "In Progress"
    assert updated["assigned_to"] == "w@test.com"


def test_apply_missing_document(transactional_db):
    doc_ref = transactional_db.collection.return_value.document.return_value
    doc_ref.get.return_value = _snapshot("abc", None, exists=False)
    with pytest.raises(NotFoundError):
        FirestoreIssueStore(transactional_db).apply("abc", lambda current: {"status": "In Progress"})
    transactional_db.transaction.return_value.update.assert_not_called()


def test_apply_failing_mutator_writes_nothing(transactional_db):
    doc_ref = transactional_db.collection.return_value.document.return_value
    doc_ref.get.return_value = _snapshot("abc", {"status": "Resolved"})

    def _mutate(current):
        raise ValidationError("Issue must be marked 'For Review' before it can be resolved")

    with pytest.raises(ValidationError):
        FirestoreIssueStore(transactional_db).apply("abc", _mutate)
    transactional_db.transaction.return_value.update.assert_not_called()


def test_apply_gives_mutator_a_private_copy(transactional_db):
    doc_ref = transactional_db.collection.return_value.document.return_value
    doc_ref.get.return_value = _snapshot("abc", {"status": "Pending", "comments": [{"text": "first"}]})

    def _mutate(current):
        current["comments"].append({"text": "leaked"})
        return {"status": "In Progress"}

    updated = FirestoreIssueStore(transactional_db).apply("abc", _mutate)
    assert updated["comments"] == [{"text": "first"}]
