"""
Issue endpoints - the lifecycle engine's HTTP surface.

The caller's identity always comes from the bearer credential; request
bodies never carry reporter, assignee or role fields.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.settings import settings
from app.models.issue import (
    AssignRequest,
    CommentCreate,
    Issue,
    IssueStatus,
    Location,
    ResolveRequest,
    StatusUpdateRequest,
    TransitionOptions,
)
from app.models.user import Actor
from app.routes.deps import get_current_actor, issue_service
from app.services.access_scope import ListScope
from app.services.issue_service import IssueService
from app.services.photo_storage import PhotoUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["Issues"])


@router.post("", response_model=Issue, status_code=status.HTTP_201_CREATED)
def create_issue(
    description: str = Form(..., min_length=1, max_length=4000),
    lat: float = Form(..., ge=-90, le=90),
    lng: float = Form(..., ge=-180, le=180),
    photos: Optional[List[UploadFile]] = File(None),
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """
    Report a new issue.

    This endpoint:
    1. Categorizes the description (and photos)
    2. Uploads the photos
    3. Auto-assigns the nearest located worker
    4. Stores the issue as Pending

    Nothing is stored if categorization or upload fails.
    """
    logger.info(f"📝 POST /issues - report from {actor.email} at ({lat}, {lng})")
    # One byte past the limit is enough for validate_photos to reject an oversized file
    read_limit = settings.MAX_PHOTO_BYTES + 1
    uploads = [
        PhotoUpload(filename=photo.filename, content_type=photo.content_type, data=photo.file.read(read_limit))
        for photo in (photos or [])
    ]
    return service.create_issue(actor, description, uploads, Location(lat=lat, lng=lng))


@router.get("", response_model=List[Issue])
def list_issues(
    scope: ListScope = Query(ListScope.ALL, description="all | reported | assigned"),
    status_filter: Optional[IssueStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, max_length=255, description="Reporter email, name or mobile (service lookups)"),
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """Issues visible to the caller, newest first."""
    return service.list_issues(actor, scope=scope, status=status_filter, search=search)


@router.get("/search", response_model=List[Issue])
def search_issues(
    identifier: str = Query(..., min_length=1, max_length=255),
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """Service lookup of a reporter's issues by email, name or mobile number."""
    return service.search_issues(actor, identifier)


@router.get("/{issue_id}", response_model=Issue)
def get_issue(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    return service.get_issue(actor, issue_id)


@router.get("/{issue_id}/transitions", response_model=TransitionOptions)
def get_allowed_transitions(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """Statuses the caller may move this issue to right now."""
    return service.allowed_transitions(actor, issue_id)


@router.put("/{issue_id}/status", response_model=Issue)
def update_status(
    issue_id: str,
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """
    Change issue status.

    **Edges:**
    - Pending → In Progress, In Progress → For Review: admin or assigned worker
    - Pending/In Progress → Resolved: admin (no rating)
    - For Review → Resolved: admin, or the reporter with a rating 1-5
    """
    return service.transition_status(actor, issue_id, request.status, rating=request.rating, note=request.note)


@router.put("/{issue_id}/resolve", response_model=Issue)
def resolve_issue(
    issue_id: str,
    request: ResolveRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    """Reporter confirms the fix and rates it."""
    return service.resolve_issue(actor, issue_id, request.rating)


@router.put("/{issue_id}/assign", response_model=Issue)
def assign_issue(
    issue_id: str,
    request: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    return service.assign_worker(actor, issue_id, request.worker_email)


@router.post("/{issue_id}/comments", response_model=Issue, status_code=status.HTTP_201_CREATED)
def add_comment(
    issue_id: str,
    request: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(issue_service),
):
    return service.add_comment(actor, issue_id, request.text)
