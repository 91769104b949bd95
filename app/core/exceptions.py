"""
Domain errors for the issue lifecycle engine.

Every error is a local, synchronous failure of a single operation.
Nothing here is retried by the core; the HTTP layer maps each class
to a status code through `status_code`.
"""


class CivicIssueError(Exception):
    """Base class for all lifecycle engine errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CivicIssueError):
    """Issue id or user email does not exist."""

    status_code = 404


class UnauthorizedError(CivicIssueError):
    """Actor role or identity is not permitted for the operation."""

    status_code = 403


class InvalidTransitionError(CivicIssueError):
    """Requested status change is not an edge of the transition table."""

    status_code = 409


class ValidationError(CivicIssueError):
    """Malformed input: rating out of range, empty text, wrong user role, ..."""

    status_code = 422


class DuplicateUserError(ValidationError):
    status_code = 409


class ExternalDependencyError(CivicIssueError):
    """Classifier or blob store unavailable. Creation is aborted."""

    status_code = 502


class AuthenticationError(CivicIssueError):
    """Missing, expired or malformed identity credential."""

    status_code = 401
