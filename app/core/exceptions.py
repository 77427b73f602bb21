"""
Error taxonomy for the team collaboration core.

Services raise these instead of returning ``None``/``False`` for failures, so
callers (and the HTTP layer) can tell a missing team from a forbidden action
or a conflicting write by type alone. Each class carries the HTTP status the
API answers with; the mapping lives in ``app.main``.
"""
from fastapi import status


class TeamCoreError(Exception):
    """Base class for all team collaboration errors.

    Examples:
        >>> error = TeamCoreError("Something failed")
        >>> str(error)
        'Something failed'
        >>> error.status_code
        500
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(TeamCoreError):
    """Malformed or missing input, e.g. an empty team name or missing email."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(TeamCoreError):
    """Missing or invalid bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(TeamCoreError):
    """Authenticated, but the caller's team role does not allow the action.

    Examples:
        >>> isinstance(AuthorizationError("Access denied"), TeamCoreError)
        True
        >>> AuthorizationError.status_code
        403
    """

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(TeamCoreError):
    """Team, member or invitation absent; also used for expired or used tokens."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TeamCoreError):
    """Duplicate membership, duplicate pending invitation or a guarded state change."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(TeamCoreError):
    """Persistence failure; the surrounding transaction has been rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
