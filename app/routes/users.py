"""
User directory endpoints - worker management and profile updates.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.models.issue import Location
from app.models.user import Actor, ProfileUpdate, UserCreate, UserResponse
from app.routes.deps import get_current_actor, user_service
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserResponse])
def list_users(
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(user_service),
):
    """Directory listing (admin only)."""
    return service.list_users(actor)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: UserCreate,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(user_service),
):
    """Create a Worker or Service account (admin only)."""
    return service.create_user(actor, request)


@router.put("/me", response_model=UserResponse)
def update_my_profile(
    request: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(user_service),
):
    return service.update_my_profile(actor, request)


@router.put("/me/location", response_model=UserResponse)
def update_my_location(
    request: Location,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(user_service),
):
    """A worker reports their current location."""
    return service.update_my_location(actor, request)


@router.put("/{email}/location", response_model=UserResponse)
def update_user_location(
    email: str,
    request: Location,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(user_service),
):
    """Admin moves a worker."""
    return service.update_user_location(actor, email, request)
