"""
Store interfaces - the authoritative collections behind the lifecycle engine.

Two implementations exist for each interface:
- memory_store: in-process dictionaries, optionally mirrored to a JSON file (mock mode, tests)
- firestore_store: Google Cloud Firestore (production)

Both must honour the same atomic-merge contract: every mutation of an
issue goes through `apply`, which runs the caller's mutator against the
current record and merges the returned fields in one linearized step.
Concurrent writers to disjoint fields never clobber each other.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

Record = Dict
Mutator = Callable[[Record], Dict]
Predicate = Callable[[Record], bool]


class IssueStore(ABC):
    """Collection of issue records keyed by identifier."""

    @abstractmethod
    def create(self, issue_data: Dict) -> Record:
        """
        Persist a new issue.

        Assigns a fresh unique id, sets `created_at` to now (unless the
        caller already stamped it), and initializes status to Pending,
        an empty comment log and no rating.

        Returns:
            The full stored record, including `id`
        """
        pass

    @abstractmethod
    def get_by_id(self, issue_id: str) -> Record:
        """
        Returns:
            The stored record

        Raises:
            NotFoundError: If no record has this id
        """
        pass

    @abstractmethod
    def scan(self, predicate: Optional[Predicate] = None, **equals) -> List[Record]:
        """
        Return every record whose fields equal `equals` and that satisfies `predicate`.
        Order is unspecified.
        """
        pass

    @abstractmethod
    def apply(self, issue_id: str, mutator: Mutator) -> Record:
        """
        Atomically read-modify-write a single record.

        `mutator` receives a private copy of the current record and returns
        the fields to merge. If it raises, nothing is written and the
        exception propagates. Implementations may call `mutator` more than
        once (optimistic retry), so it must be free of side effects.

        Raises:
            NotFoundError: If no record has this id
        """
        pass

    def update(self, issue_id: str, fields: Dict) -> Record:
        """Merge `fields` into the record atomically."""
        return self.apply(issue_id, lambda current: dict(fields))


class UserStore(ABC):
    """Directory of users keyed by (lower-cased) email."""

    @abstractmethod
    def get(self, email: str) -> Optional[Record]:
        pass

    @abstractmethod
    def list(self) -> List[Record]:
        """All users in directory iteration order (insertion order where the backend has one)."""
        pass

    @abstractmethod
    def add(self, user_data: Dict) -> Record:
        """
        Raises:
            DuplicateUserError: If the email is already registered
        """
        pass

    @abstractmethod
    def update(self, email: str, fields: Dict) -> Record:
        """
        Raises:
            NotFoundError: If the email is unknown
        """
        pass


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()
