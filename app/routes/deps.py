"""
Shared route dependencies: caller identity and service instances.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.models.user import Actor
from app.services.issue_service import IssueService, get_issue_service
from app.services.user_service import UserService, get_user_service
from app.utils.security import decode_identity_token

bearer = HTTPBearer(auto_error=False)


def get_current_actor(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Actor:
    return decode_identity_token(creds.credentials if creds else None)


def issue_service() -> IssueService:
    return get_issue_service()


def user_service() -> UserService:
    return get_user_service()
