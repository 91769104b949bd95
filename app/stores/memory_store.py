"""
Mock database - in-process stores for local development and tests.

Collections live in dictionaries and are optionally mirrored to a JSON
file after every write, so a dev server keeps its data across restarts.
Each issue record has its own lock; `apply` holds it for the whole
read-modify-write so concurrent updates to one issue are linearized.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.core.exceptions import DuplicateUserError, NotFoundError
from app.models.issue import IssueStatus
from app.stores.base import IssueStore, Mutator, Predicate, Record, UserStore, normalize_email
from app.utils.firestore_helpers import to_datetime, utcnow

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class MockDatabase:
    """
    Named collections of documents with per-document locks.

    `path=None` keeps everything in memory.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or None
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._doc_locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._load()

    def _load(self):
        if not self.path or not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            self._collections = json.load(f)
        logger.info(f"Mock database loaded from {self.path}")

    def flush(self):
        if not self.path:
            return
        with self._lock:
            snapshot = copy.deepcopy(self._collections)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, default=_json_default, indent=2)
            os.replace(tmp_path, self.path)

    def collection(self, name: str) -> Dict[str, Record]:
        with self._lock:
            return self._collections.setdefault(name, {})

    def doc_lock(self, collection: str, doc_id: str) -> threading.Lock:
        with self._lock:
            key = (collection, doc_id)
            if key not in self._doc_locks:
                self._doc_locks[key] = threading.Lock()
            return self._doc_locks[key]

    def read(self, collection: str, doc_id: str) -> Optional[Record]:
        with self._lock:
            doc = self.collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def write(self, collection: str, doc_id: str, data: Record):
        with self._lock:
            self.collection(collection)[doc_id] = copy.deepcopy(data)
        self.flush()

    def collection_names(self) -> List[str]:
        with self._lock:
            return list(self._collections.keys())

    def values(self, collection: str) -> List[Record]:
        with self._lock:
            return copy.deepcopy(list(self.collection(collection).values()))


def _decode_issue(record: Record) -> Record:
    """Restore datetimes that went through the JSON file as strings."""
    record["created_at"] = to_datetime(record.get("created_at"))
    for comment in record.get("comments") or []:
        comment["created_at"] = to_datetime(comment.get("created_at"))
    for entry in record.get("status_history") or []:
        entry["timestamp"] = to_datetime(entry.get("timestamp"))
    return record


class MemoryIssueStore(IssueStore):
    COLLECTION = "issues"

    def __init__(self, db: Optional[MockDatabase] = None):
        self.db = db or MockDatabase()

    def create(self, issue_data: Dict) -> Record:
        issue_id = uuid.uuid4().hex[:12]
        while self.db.read(self.COLLECTION, issue_id) is not None:
            issue_id = uuid.uuid4().hex[:12]

        record = dict(issue_data)
        record.update({
            "id": issue_id,
            "created_at": issue_data.get("created_at") or utcnow(),
            "status": IssueStatus.PENDING.value,
            "comments": [],
            "rating": None,
            "status_history": list(issue_data.get("status_history") or []),
        })
        self.db.write(self.COLLECTION, issue_id, record)
        logger.info(f"Issue stored in mock database: {issue_id}")
        return _decode_issue(self.db.read(self.COLLECTION, issue_id))

    def get_by_id(self, issue_id: str) -> Record:
        record = self.db.read(self.COLLECTION, issue_id)
        if record is None:
            raise NotFoundError(f"Issue {issue_id} not found")
        return _decode_issue(record)

    def scan(self, predicate: Optional[Predicate] = None, **equals) -> List[Record]:
        results = []
        for record in self.db.values(self.COLLECTION):
            if any(record.get(field) != value for field, value in equals.items()):
                continue
            record = _decode_issue(record)
            if predicate is not None and not predicate(record):
                continue
            results.append(record)
        return results

    def apply(self, issue_id: str, mutator: Mutator) -> Record:
        with self.db.doc_lock(self.COLLECTION, issue_id):
            current = self.db.read(self.COLLECTION, issue_id)
            if current is None:
                raise NotFoundError(f"Issue {issue_id} not found")
            current = _decode_issue(current)
            changes = mutator(copy.deepcopy(current))
            changes.pop("id", None)
            current.update(changes)
            self.db.write(self.COLLECTION, issue_id, current)
            return copy.deepcopy(current)


class MemoryUserStore(UserStore):
    COLLECTION = "users"

    def __init__(self, db: Optional[MockDatabase] = None):
        self.db = db or MockDatabase()

    def get(self, email: str) -> Optional[Record]:
        record = self.db.read(self.COLLECTION, normalize_email(email))
        if record is not None:
            record["created_at"] = to_datetime(record.get("created_at"))
        return record

    def list(self) -> List[Record]:
        users = self.db.values(self.COLLECTION)
        for user in users:
            user["created_at"] = to_datetime(user.get("created_at"))
        return users

    def add(self, user_data: Dict) -> Record:
        email = normalize_email(user_data.get("email", ""))
        with self.db.doc_lock(self.COLLECTION, email):
            if self.db.read(self.COLLECTION, email) is not None:
                raise DuplicateUserError(f"User with email {email} already exists")
            record = dict(user_data)
            record["email"] = email
            record.setdefault("created_at", utcnow())
            self.db.write(self.COLLECTION, email, record)
        return self.get(email)

    def update(self, email: str, fields: Dict) -> Record:
        email = normalize_email(email)
        with self.db.doc_lock(self.COLLECTION, email):
            current = self.db.read(self.COLLECTION, email)
            if current is None:
                raise NotFoundError(f"User {email} not found")
            changes = dict(fields)
            changes.pop("email", None)
            current.update(changes)
            self.db.write(self.COLLECTION, email, current)
        return self.get(email)
