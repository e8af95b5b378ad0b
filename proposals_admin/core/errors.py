"""
Domain-specific exceptions for the Proposals Admin API.

These exceptions represent request-level failures (missing records, missing
permissions, malformed payloads) and are mapped to HTTP status codes in the
API layer. Expected business failures of a mutation are not exceptions: the
command objects report them as named outcomes.
"""

from typing import Any


class ProposalsAdminError(Exception):
    """Base exception for all proposals admin domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ProposalsAdminError):
    """
    Raised when input data fails validation outside of a form.

    Examples:
    - Malformed attachment payload
    - Unknown sort column

    HTTP Status: 400 Bad Request
    """

    pass


class NotFoundError(ProposalsAdminError):
    """
    Raised when a requested resource does not exist.

    Examples:
    - Proposal not found in the current component
    - Component not found

    HTTP Status: 404 Not Found
    """

    pass


class UnauthorizedError(ProposalsAdminError):
    """
    Raised when the request is not authenticated.

    Examples:
    - Missing JWT token
    - Invalid or expired JWT token

    HTTP Status: 401 Unauthorized
    """

    pass


class ForbiddenError(ProposalsAdminError):
    """
    Raised when user is authenticated but not allowed to perform action.

    Examples:
    - Missing permission claim
    - Editing a proposal that already has votes
    - Creating proposals while official proposals are disabled

    HTTP Status: 403 Forbidden
    """

    pass


class ConflictError(ProposalsAdminError):
    """
    Raised when operation conflicts with current state.

    Examples:
    - Integrity error while persisting a proposal

    HTTP Status: 409 Conflict
    """

    pass


# HTTP Status Code Mapping
ERROR_STATUS_MAP = {
    ValidationError: 400,
    NotFoundError: 404,
    UnauthorizedError: 401,
    ForbiddenError: 403,
    ConflictError: 409,
}


def get_status_code(error: Exception) -> int:
    """
    Get the HTTP status code for a given exception.

    Args:
        error: The exception instance

    Returns:
        HTTP status code (defaults to 500 for unknown errors)
    """
    return ERROR_STATUS_MAP.get(type(error), 500)
