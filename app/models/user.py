"""
User models for the worker directory and caller identity.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional
from enum import Enum

from app.models.issue import Location


class UserRole(str, Enum):
    CITIZEN = "Citizen"
    WORKER = "Worker"
    ADMIN = "Admin"
    SERVICE = "Service"


class Actor(BaseModel):
    """
    The authenticated identity invoking an operation.
    Resolved from the external identity credential, never from the request body.
    """
    email: str
    role: UserRole
    name: str = ""

    class Config:
        frozen = True

    @property
    def display_name(self) -> str:
        return self.name or self.email


class UserResponse(BaseModel):
    """Directory entry as returned to callers (no secrets are ever stored)."""
    email: str
    first_name: str = ""
    last_name: str = ""
    mobile_number: str = ""
    role: UserRole
    location: Optional[Location] = None
    created_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email


class UserCreate(BaseModel):
    """Admin request to create a Worker or Service account."""
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    mobile_number: str = Field("", max_length=30)
    role: UserRole = Field(UserRole.WORKER, description="Worker or Service")
    location: Optional[Location] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProfileUpdate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    mobile_number: str = Field("", max_length=30)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
