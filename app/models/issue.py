"""
Pydantic models for civic issues.

Records are stored with snake_case keys; on the wire every model uses
camelCase aliases (photoUrls, reporterId, assignedToName, ...).
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List
from enum import Enum


class IssueStatus(str, Enum):
    """
    Issue lifecycle states.

    Pending → In Progress → For Review → Resolved
    """
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    FOR_REVIEW = "For Review"
    RESOLVED = "Resolved"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Location(CamelModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class Comment(CamelModel):
    """A single entry of an issue's append-only comment log."""
    id: str
    author_id: str
    author_name: str
    text: str
    created_at: datetime


class StatusHistoryEntry(CamelModel):
    """Status transition history entry."""
    from_status: str = Field(..., alias="from", description="Previous status ('' for creation)")
    to_status: str = Field(..., alias="to", description="New status")
    changed_by: str = Field(..., description="Email of the actor who made the change")
    timestamp: datetime
    note: Optional[str] = None


class Issue(CamelModel):
    """
    A single reported civic problem and its full history.

    `reporter_name` and `assigned_to_name` are snapshots taken at write
    time and are not refreshed when the user later renames themselves.
    """
    id: str = Field(..., description="Store-generated identifier")
    title: str
    description: str
    category: str
    photo_urls: List[str] = Field(default_factory=list)
    location: Location
    status: IssueStatus = IssueStatus.PENDING
    created_at: datetime
    reporter_id: str
    reporter_name: str
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    comments: List[Comment] = Field(default_factory=list)
    rating: Optional[int] = Field(None, ge=1, le=5)
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: dict) -> "Issue":
        return cls.model_validate(record)


class StatusUpdateRequest(CamelModel):
    """Request to move an issue to a new status."""
    status: IssueStatus = Field(..., description="Target status")
    rating: Optional[int] = Field(None, description="Required when the reporter resolves (1-5)")
    note: Optional[str] = Field(None, max_length=500, description="Optional note for the status history")


class ResolveRequest(CamelModel):
    """Reporter confirms the fix and rates it."""
    rating: int = Field(..., description="Satisfaction rating 1-5")


class AssignRequest(CamelModel):
    worker_email: str = Field(..., min_length=3, max_length=255)


class CommentCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)


class TransitionOptions(CamelModel):
    """Statuses the calling actor may move an issue to right now."""
    issue_id: str
    current_status: IssueStatus
    allowed: List[IssueStatus]
