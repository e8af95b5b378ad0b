"""
Utility functions for user extraction and permission constants.

Provides helper functions for extracting user information from JWT payloads
and defines the permission names used by the admin endpoints.
"""

import logging
from typing import Any

from proposals_admin.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

# Permission claims checked by the admin endpoints (Auth0 RBAC "permissions" claim)
PROPOSAL_READ = "proposal:read"
PROPOSAL_CREATE = "proposal:create"
PROPOSAL_UPDATE = "proposal:update"
PROPOSAL_CATEGORY_UPDATE = "proposal_category:update"
PROPOSAL_SCOPE_UPDATE = "proposal_scope:update"
PROPOSAL_ANSWER_CREATE = "proposal_answer:create"
PROPOSAL_ANSWER_PUBLISH = "proposal_answer:publish"
PROPOSAL_NOTE_CREATE = "proposal_note:create"

ALL_PERMISSIONS = frozenset(
    {
        PROPOSAL_READ,
        PROPOSAL_CREATE,
        PROPOSAL_UPDATE,
        PROPOSAL_CATEGORY_UPDATE,
        PROPOSAL_SCOPE_UPDATE,
        PROPOSAL_ANSWER_CREATE,
        PROPOSAL_ANSWER_PUBLISH,
        PROPOSAL_NOTE_CREATE,
    }
)


def get_user_sub(payload: dict[str, Any]) -> str:
    """
    Extract the Auth0 subject (user ID) from the JWT payload.

    Args:
        payload: Decoded JWT payload from verify_token_async()

    Returns:
        Auth0 subject string (user ID)

    Raises:
        UnauthorizedError: If 'sub' claim is missing
    """
    sub = payload.get("sub")
    if not sub:
        logger.error("JWT payload missing 'sub' claim")
        raise UnauthorizedError("Invalid token - missing user identifier")
    return sub


def get_user_id(user: dict[str, Any]) -> str:
    """
    Extract user ID from JWT user dict.

    Used as the `whodunnit` of versions and the `user_id` of action logs.

    Args:
        user: User dict from authenticated request (contains 'sub' claim)

    Returns:
        User ID string (the 'sub' claim value), empty when absent
    """
    sub = user.get("sub")
    if not sub:
        return ""
    return str(sub)


def get_user_permissions(payload: dict[str, Any]) -> list[str]:
    """
    Extract permissions from the JWT payload.

    Permissions live in the 'permissions' claim; machine tokens may carry them
    in the space-separated 'scope' claim instead.

    Args:
        payload: Decoded JWT payload

    Returns:
        List of permission strings, empty if none are present
    """
    permissions = payload.get("permissions", [])
    if isinstance(permissions, list) and permissions:
        return permissions

    scope = payload.get("scope", "")
    if isinstance(scope, str):
        return scope.split()

    return []


def has_permission(payload: dict[str, Any], required_permission: str) -> bool:
    """Check if the token has the required permission."""
    return required_permission in get_user_permissions(payload)
