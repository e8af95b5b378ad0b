"""Per-request context shared by forms and commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from proposals_admin.core.security import get_user_id

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from proposals_admin.db.models import Component
    from proposals_admin.domain.settings import ComponentSettings
    from proposals_admin.services import AttachmentStorage, Geocoder


@dataclass
class AdminContext:
    """
    Everything a form validation or a command needs besides its own input.

    Attributes:
        db: Session the command runs its transaction on
        component: Component the request was routed to
        user: Decoded JWT payload of the administrator
        geocoder: Geocoding collaborator, if geocoding may be needed
        storage: Attachment storage collaborator, if files may be stored
    """

    db: AsyncSession
    component: Component
    user: dict[str, Any]
    geocoder: Geocoder | None = None
    storage: AttachmentStorage | None = None

    @property
    def user_id(self) -> str:
        return get_user_id(self.user)

    @property
    def settings(self) -> ComponentSettings:
        return self.component.current_settings

    @property
    def organization_id(self) -> int:
        return self.component.organization_id

    @property
    def participatory_space_id(self) -> int:
        return self.component.participatory_space_id
