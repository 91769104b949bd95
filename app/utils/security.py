"""
Identity credential handling.

Credentials are HS256 JWTs issued by the external identity service with
claims `sub` (email), `role` and optionally `name`. This module only
verifies them and turns them into an Actor; it never logs token contents.
"""

import logging
import time
from typing import Optional

import jwt

from app.core.exceptions import AuthenticationError
from app.core.settings import settings
from app.models.user import Actor, UserRole
from app.stores.base import normalize_email

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


def decode_identity_token(token: Optional[str]) -> Actor:
    """
    Verify a credential and return the Actor it names.

    Raises:
        AuthenticationError: Missing, expired, badly signed or incomplete credential
    """
    if not token:
        raise AuthenticationError("Not authenticated")
    try:
        payload = jwt.decode(
            token,
            settings.IDENTITY_TOKEN_SECRET,
            algorithms=[settings.IDENTITY_TOKEN_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        logger.warning("Rejected invalid identity token")
        raise AuthenticationError("Invalid token")

    email = normalize_email(payload.get("sub", ""))
    if not email:
        raise AuthenticationError("Invalid token payload")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    return Actor(email=email, role=role, name=payload.get("name") or "")


def make_identity_token(email: str, role: UserRole, name: str = "", ttl: int = DEFAULT_TTL_SECONDS) -> str:
    """Issue a credential the way the identity service does (tests and tooling)."""
    now = int(time.time())
    payload = {"sub": email, "role": UserRole(role).value, "name": name, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.IDENTITY_TOKEN_SECRET, algorithm=settings.IDENTITY_TOKEN_ALGORITHM)
