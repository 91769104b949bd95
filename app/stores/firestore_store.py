"""
Firestore-backed stores (production).

Issue mutations run inside Firestore transactions: the current document
is read in the transaction, the mutator computes the changed fields and
`transaction.update` merges them. Firestore retries the transaction when
a concurrent writer touched the same document, which gives the
optimistic-merge-with-retry behaviour the lifecycle engine relies on.
"""

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from typing import Dict, List, Optional
import copy
import logging

from app.core.exceptions import CivicIssueError, DuplicateUserError, NotFoundError
from app.models.issue import IssueStatus
from app.stores.base import IssueStore, Mutator, Predicate, Record, UserStore, normalize_email
from app.utils.firestore_helpers import to_datetime, utcnow, where_filter

logger = logging.getLogger(__name__)


def _snapshot_to_record(snapshot) -> Record:
    record = snapshot.to_dict() or {}
    record["id"] = snapshot.id
    record["created_at"] = to_datetime(record.get("created_at"))
    return record


class FirestoreIssueStore(IssueStore):
    COLLECTION = "issues"

    def __init__(self, db):
        self.db = db

    def _collection(self):
        return self.db.collection(self.COLLECTION)

    def create(self, issue_data: Dict) -> Record:
        doc_ref = self._collection().document()  # Auto-generate unique ID
        record = dict(issue_data)
        record.update({
            "created_at": issue_data.get("created_at") or utcnow(),
            "status": IssueStatus.PENDING.value,
            "comments": [],
            "rating": None,
            "status_history": list(issue_data.get("status_history") or []),
        })
        record.pop("id", None)

        try:
            # create() fails if the generated id is somehow already taken
            doc_ref.create(record)
            logger.info(f"Issue saved to Firestore: {doc_ref.id}")
        except Exception as e:
            logger.error(f"Failed to save issue to Firestore: {e}", exc_info=True)
            raise

        return {**record, "id": doc_ref.id}

    def get_by_id(self, issue_id: str) -> Record:
        snapshot = self._collection().document(issue_id).get()
        if not snapshot.exists:
            raise NotFoundError(f"Issue {issue_id} not found")
        return _snapshot_to_record(snapshot)

    def scan(self, predicate: Optional[Predicate] = None, **equals) -> List[Record]:
        query = self._collection()
        for field, value in equals.items():
            query = where_filter(query, field, "==", value)

        results = []
        for snapshot in query.stream():
            record = _snapshot_to_record(snapshot)
            if predicate is not None and not predicate(record):
                continue
            results.append(record)
        return results

    def apply(self, issue_id: str, mutator: Mutator) -> Record:
        doc_ref = self._collection().document(issue_id)

        @firestore.transactional
        def _run(transaction) -> Record:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"Issue {issue_id} not found")
            current = _snapshot_to_record(snapshot)
            changes = mutator(copy.deepcopy(current))
            changes.pop("id", None)
            transaction.update(doc_ref, changes)
            current.update(changes)
            return current

        try:
            return _run(self.db.transaction())
        except CivicIssueError:
            raise
        except Exception as e:
            logger.error(f"Firestore transaction failed for issue {issue_id}: {e}", exc_info=True)
            raise


class FirestoreUserStore(UserStore):
    """Users keyed by lower-cased email; ordered by creation time for stable iteration."""

    COLLECTION = "users"

    def __init__(self, db):
        self.db = db

    def _collection(self):
        return self.db.collection(self.COLLECTION)

    def get(self, email: str) -> Optional[Record]:
        snapshot = self._collection().document(normalize_email(email)).get()
        if not snapshot.exists:
            return None
        record = _snapshot_to_record(snapshot)
        record.pop("id", None)
        return record

    def list(self) -> List[Record]:
        users = []
        query = self._collection().order_by("created_at")
        for snapshot in query.stream():
            record = _snapshot_to_record(snapshot)
            record.pop("id", None)
            users.append(record)
        return users

    def add(self, user_data: Dict) -> Record:
        email = normalize_email(user_data.get("email", ""))
        record = dict(user_data)
        record["email"] = email
        record.setdefault("created_at", utcnow())
        try:
            self._collection().document(email).create(record)
        except google_exceptions.AlreadyExists:
            raise DuplicateUserError(f"User with email {email} already exists")
        logger.info(f"User created in Firestore: {email}")
        return record

    def update(self, email: str, fields: Dict) -> Record:
        email = normalize_email(email)
        changes = dict(fields)
        changes.pop("email", None)
        try:
            self._collection().document(email).update(changes)
        except google_exceptions.NotFound:
            raise NotFoundError(f"User {email} not found")
        return self.get(email)
