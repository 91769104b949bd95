"""
Shared fixtures: an in-memory directory with two located workers, three
citizens, an admin and a service user, plus an IssueService wired to
the rule-based classifier and in-memory photo storage.
"""
import pytest

from app.models.issue import Location
from app.models.user import Actor, UserRole
from app.services.classifier import MockClassifier
from app.services.issue_service import IssueService
from app.services.photo_storage import InMemoryPhotoStorage
from app.services.user_service import UserService
from app.stores.memory_store import MemoryIssueStore, MemoryUserStore, MockDatabase

WORKER_NEAR = "walt@test.com"
WORKER_FAR = "faraway@test.com"

ADMIN = Actor(email="admin@test.com", role=UserRole.ADMIN, name="Admin User")
CITIZEN_A = Actor(email="alice@test.com", role=UserRole.CITIZEN, name="Alice Reporter")
CITIZEN_B = Actor(email="bob@test.com", role=UserRole.CITIZEN, name="Bob Neighbour")
WORKER_W = Actor(email=WORKER_NEAR, role=UserRole.WORKER, name="Walt Worker")
WORKER_OTHER = Actor(email=WORKER_FAR, role=UserRole.WORKER, name="Fay Faraway")
SERVICE = Actor(email="helpdesk@test.com", role=UserRole.SERVICE, name="Help Desk")

ISSUE_LOCATION = Location(lat=34.05, lng=-118.24)

DIRECTORY = [
    {"email": "admin@test.com", "first_name": "Admin", "last_name": "User",
     "mobile_number": "1234567890", "role": "Admin"},
    {"email": WORKER_NEAR, "first_name": "Walt", "last_name": "Worker",
     "mobile_number": "5550100001", "role": "Worker", "location": {"lat": 34.06, "lng": -118.25}},
    {"email": WORKER_FAR, "first_name": "Fay", "last_name": "Faraway",
     "mobile_number": "5550100002", "role": "Worker", "location": {"lat": 10.0, "lng": 10.0}},
    {"email": "unplaced@test.com", "first_name": "Una", "last_name": "Placed",
     "mobile_number": "5550100003", "role": "Worker"},
    {"email": "alice@test.com", "first_name": "Alice", "last_name": "Reporter",
     "mobile_number": "5550100100", "role": "Citizen"},
    {"email": "bob@test.com", "first_name": "Bob", "last_name": "Neighbour",
     "mobile_number": "5550100200", "role": "Citizen"},
    {"email": "helpdesk@test.com", "first_name": "Help", "last_name": "Desk",
     "mobile_number": "5550100009", "role": "Service"},
]


@pytest.fixture
def db():
    return MockDatabase()


@pytest.fixture
def issue_store(db):
    return MemoryIssueStore(db)


@pytest.fixture
def user_store(db):
    store = MemoryUserStore(db)
    for user in DIRECTORY:
        store.add(user)
    return store


@pytest.fixture
def users(user_store):
    return UserService(user_store)


@pytest.fixture
def photo_storage():
    return InMemoryPhotoStorage()


@pytest.fixture
def service(issue_store, users, photo_storage):
    return IssueService(issue_store, users, MockClassifier(), photo_storage)


@pytest.fixture
def issue(service):
    """A fresh Pending issue reported by citizen A, auto-assigned to the near worker."""
    return service.create_issue(
        CITIZEN_A,
        "Deep pothole in the left lane. Cars are swerving around it.",
        [],
        ISSUE_LOCATION,
    )


@pytest.fixture
def issue_for_review(service, issue):
    service.transition_status(ADMIN, issue.id, "In Progress")
    return service.transition_status(ADMIN, issue.id, "For Review")
