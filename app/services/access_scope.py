"""
Access scoping - which issues an actor may see or mutate.

Visibility is a table keyed by role. The lifecycle engine consults it
before any transition, assignment or comment, so an out-of-scope request
fails here with UnauthorizedError and never reaches the state machine.

Citizen: issues they reported
Worker:  issues assigned to them
Admin:   everything
Service: everything, read-only, looked up by an explicit search term
"""

from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Set
import logging

from app.core.exceptions import UnauthorizedError
from app.models.user import Actor, UserRole

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    READ = "read"
    MUTATE = "mutate"


class ListScope(str, Enum):
    ALL = "all"
    REPORTED = "reported"
    ASSIGNED = "assigned"


VISIBILITY: Dict[UserRole, Callable[[Actor, Dict], bool]] = {
    UserRole.CITIZEN: lambda actor, issue: issue.get("reporter_id") == actor.email,
    UserRole.WORKER: lambda actor, issue: issue.get("assigned_to") == actor.email,
    UserRole.ADMIN: lambda actor, issue: True,
    UserRole.SERVICE: lambda actor, issue: True,
}

# Field each role's visibility is pinned to, pushed down into store scans
OWNERSHIP_FIELD: Dict[UserRole, str] = {
    UserRole.CITIZEN: "reporter_id",
    UserRole.WORKER: "assigned_to",
}

SCOPE_FIELD: Dict[ListScope, str] = {
    ListScope.REPORTED: "reporter_id",
    ListScope.ASSIGNED: "assigned_to",
}

INTENTS: Dict[UserRole, Set[Intent]] = {
    UserRole.CITIZEN: {Intent.READ, Intent.MUTATE},
    UserRole.WORKER: {Intent.READ, Intent.MUTATE},
    UserRole.ADMIN: {Intent.READ, Intent.MUTATE},
    UserRole.SERVICE: {Intent.READ},
}


def can_view(actor: Actor, issue: Dict) -> bool:
    rule = VISIBILITY.get(actor.role)
    return bool(rule and rule(actor, issue))


def check_access(actor: Actor, issue: Dict, intent: Intent = Intent.READ):
    """
    Raises:
        UnauthorizedError: The issue is outside the actor's scope, or the role may not perform `intent`
    """
    if intent not in INTENTS.get(actor.role, set()):
        logger.warning(f"Denied {intent.value} on issue {issue.get('id')} for {actor.role.value} {actor.email}")
        raise UnauthorizedError(f"{actor.role.value} users have read-only access to issues")
    if not can_view(actor, issue):
        logger.warning(f"Denied {intent.value} on issue {issue.get('id')} for {actor.role.value} {actor.email}")
        raise UnauthorizedError("You are not authorized to view this issue.")


def scan_filters(actor: Actor, scope: ListScope = ListScope.ALL) -> Dict[str, str]:
    """
    Equality filters for a listing query: the role's ownership pin plus the requested scope.

    A worker asking for `reported` gets their ownership pin AND the scope pin,
    which simply yields nothing unless they reported an issue assigned to themselves.
    """
    filters = {}
    field = OWNERSHIP_FIELD.get(actor.role)
    if field:
        filters[field] = actor.email
    scope_field = SCOPE_FIELD.get(scope)
    if scope_field:
        filters[scope_field] = actor.email
    return filters


def reporter_search_predicate(identifier: str, reporter_emails: Optional[Iterable[str]] = None) -> Callable[[Dict], bool]:
    """
    Match issues for a service lookup.

    An issue matches when the reporter email contains `identifier`, the
    reporter name contains it (case-insensitive), or the reporter is one of
    `reporter_emails` (resolved from a mobile number by the caller).
    """
    needle = identifier.strip()
    needle_lower = needle.lower()
    emails = set(reporter_emails or [])

    def _match(issue: Dict) -> bool:
        reporter_id = issue.get("reporter_id") or ""
        reporter_name = issue.get("reporter_name") or ""
        return (
            needle_lower in reporter_id.lower()
            or needle_lower in reporter_name.lower()
            or reporter_id in emails
        )
    return _match
