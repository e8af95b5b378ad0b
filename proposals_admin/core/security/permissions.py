"""
Permission-based access control for the proposal admin endpoints.

Two layers are checked before an action runs:

1. The JWT 'permissions' claim (``require_permission`` dependency).
2. The component context: settings toggles and the proposal being touched
   (``ensure_allowed``), e.g. an official proposal that already received
   votes can no longer be edited.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import Depends

from proposals_admin.core.errors import ForbiddenError

from .utils import (
    PROPOSAL_ANSWER_CREATE,
    PROPOSAL_ANSWER_PUBLISH,
    PROPOSAL_CREATE,
    PROPOSAL_UPDATE,
    get_user_permissions,
    get_user_sub,
    has_permission,
)

if TYPE_CHECKING:
    from proposals_admin.db.models import Proposal
    from proposals_admin.domain.settings import ComponentSettings

logger = logging.getLogger(__name__)


def require_permission(required_permission: str):
    """
    Dependency factory for permission-based access control.

    Checks the 'permissions' claim in the JWT token.

    Args:
        required_permission: The permission required to access the endpoint

    Returns:
        FastAPI dependency function that checks the user's permissions

    Example:
        @router.post("/")
        async def create(user: dict = Depends(require_permission("proposal:create"))):
            ...
    """
    from proposals_admin.core.dependencies import get_current_user as _deps_get_current_user

    def permission_checker(
        user: dict[str, Any] = Depends(_deps_get_current_user),
    ) -> dict[str, Any]:
        if not has_permission(user, required_permission):
            user_id = get_user_sub(user)
            user_permissions = get_user_permissions(user)
            logger.warning(
                "Access denied - user %s lacks permission: %s. User permissions: %s",
                user_id,
                required_permission,
                user_permissions,
            )
            raise ForbiddenError(
                "Insufficient permissions",
                details={
                    "required_permission": required_permission,
                    "user_permissions": user_permissions,
                },
            )

        logger.debug("Permission check passed: user has %s", required_permission)
        return user

    return permission_checker


def _deny(permission: str, reason: str) -> None:
    logger.warning("Access denied - %s: %s", permission, reason)
    raise ForbiddenError(
        "You are not authorized to perform this action",
        details={"permission": permission, "reason": reason},
    )


def ensure_allowed(
    permission: str,
    component_settings: ComponentSettings,
    proposal: Proposal | None = None,
) -> None:
    """
    Check the component context for an action the token already allows.

    Args:
        permission: Permission name of the action
        component_settings: Settings of the component the action runs in
        proposal: Proposal the action targets, if any

    Raises:
        ForbiddenError: When the component or the proposal forbids the action
    """
    if permission == PROPOSAL_CREATE:
        if not component_settings.official_proposals_enabled:
            _deny(permission, "official proposals are disabled")
        if not component_settings.creation_enabled:
            _deny(permission, "proposal creation is disabled")

    elif permission == PROPOSAL_UPDATE:
        if proposal is None:
            _deny(permission, "no proposal given")
        if not proposal.official:
            _deny(permission, "only official proposals can be edited")
        if proposal.proposal_votes_count > 0:
            _deny(permission, "proposal already has votes")

    elif permission in (PROPOSAL_ANSWER_CREATE, PROPOSAL_ANSWER_PUBLISH):
        if not component_settings.proposal_answering_enabled:
            _deny(permission, "proposal answering is disabled")
        if not component_settings.answers_enabled:
            _deny(permission, "answers are disabled")
