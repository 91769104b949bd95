"""
User Service - the worker directory and user management.

Supplies assignment candidates (workers with a last-known location) and
the admin operations that create Worker/Service accounts and move workers.
"""

from app.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from app.models.issue import Location
from app.models.user import Actor, ProfileUpdate, UserCreate, UserResponse, UserRole
from app.stores.base import UserStore, normalize_email
from app.core.settings import settings
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

CREATABLE_ROLES = {UserRole.WORKER, UserRole.SERVICE}


class UserService:
    """
    Service for the user directory.
    """

    def __init__(self, store: Optional[UserStore] = None):
        if store is None:
            from app.config.firebase import get_user_store
            store = get_user_store()
        self.store = store

    def get_user(self, email: str) -> Optional[UserResponse]:
        record = self.store.get(email)
        return UserResponse.model_validate(record) if record else None

    def require_user(self, email: str) -> UserResponse:
        user = self.get_user(email)
        if user is None:
            raise NotFoundError(f"User {normalize_email(email)} not found")
        return user

    def all_users(self) -> List[UserResponse]:
        return [UserResponse.model_validate(record) for record in self.store.list()]

    def located_workers(self) -> List[UserResponse]:
        """Workers with a known location, in directory iteration order."""
        return [
            user for user in self.all_users()
            if user.role == UserRole.WORKER and user.location is not None
        ]

    def emails_for_mobile(self, mobile_number: str) -> List[str]:
        wanted = self._normalize_phone(mobile_number)
        if not wanted:
            return []
        return [
            user.email for user in self.all_users()
            if self._normalize_phone(user.mobile_number) == wanted
        ]

    def list_users(self, actor: Actor) -> List[UserResponse]:
        self._require_admin(actor, "list users")
        return self.all_users()

    def create_user(self, actor: Actor, data: UserCreate) -> UserResponse:
        """
        Create a Worker or Service account (admin only).

        Raises:
            UnauthorizedError: Caller is not an admin
            ValidationError: Role is not Worker/Service, or a Service user was given a location
            DuplicateUserError: Email already registered
        """
        self._require_admin(actor, "create users")
        if data.role not in CREATABLE_ROLES:
            raise ValidationError(f"Admins can only create Worker or Service users, not {data.role.value}")
        if data.location is not None and data.role != UserRole.WORKER:
            raise ValidationError("Only workers carry a location")

        record = data.model_dump()
        record["email"] = normalize_email(data.email)
        record["role"] = data.role.value
        created = self.store.add(record)
        logger.info(f"✅ Admin {actor.email} created {data.role.value} user {record['email']}")
        return UserResponse.model_validate(created)

    def update_my_location(self, actor: Actor, location: Location) -> UserResponse:
        if actor.role != UserRole.WORKER:
            raise ValidationError("Only workers carry a location")
        return self._set_location(actor.email, location, changed_by=actor.email)

    def update_user_location(self, actor: Actor, email: str, location: Location) -> UserResponse:
        self._require_admin(actor, "move workers")
        target = self.require_user(email)
        if target.role != UserRole.WORKER:
            raise ValidationError(f"{target.email} is not a worker")
        return self._set_location(target.email, location, changed_by=actor.email)

    def update_my_profile(self, actor: Actor, data: ProfileUpdate) -> UserResponse:
        self.require_user(actor.email)
        updated = self.store.update(actor.email, data.model_dump())
        logger.info(f"User {actor.email} updated their profile")
        return UserResponse.model_validate(updated)

    def ensure_default_admin(self) -> Optional[UserResponse]:
        """Seed a single admin when the directory is empty."""
        if self.store.list():
            return None
        record = self.store.add({
            "email": settings.DEFAULT_ADMIN_EMAIL,
            "first_name": "Admin",
            "last_name": "User",
            "mobile_number": "1234567890",
            "role": UserRole.ADMIN.value,
        })
        logger.info(f"Seeded default admin {record['email']}")
        return UserResponse.model_validate(record)

    def _set_location(self, email: str, location: Location, changed_by: str) -> UserResponse:
        self.require_user(email)
        updated = self.store.update(email, {"location": location.model_dump()})
        logger.info(f"Location of {normalize_email(email)} set to ({location.lat}, {location.lng}) by {changed_by}")
        return UserResponse.model_validate(updated)

    def _require_admin(self, actor: Actor, action: str):
        if actor.role != UserRole.ADMIN:
            logger.warning(f"Denied: {actor.email} ({actor.role.value}) tried to {action}")
            raise UnauthorizedError(f"Only admins can {action}")

    def _normalize_phone(self, phone_number: Optional[str]) -> str:
        """Normalize phone number."""
        return (phone_number or "").replace(" ", "").replace("-", "").replace("(", "").replace(")", "").replace("+", "")


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
