"""Command that creates an official proposal from the admin form."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from proposals_admin.commands.attachments import (
    AttachmentWriter,
    PendingAttachment,
    build_attachment,
    build_gallery,
    process_attachments,
    process_gallery,
)
from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.core import traceability
from proposals_admin.core.notifications import notify
from proposals_admin.db.models import Proposal, utcnow
from proposals_admin.domain.enums import ActionLogVisibility

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext
    from proposals_admin.forms.proposal import ProposalForm

logger = logging.getLogger(__name__)


class CreateProposal(Command):
    """
    Creates an official, already published proposal.

    Broadcasts ``ok`` with the proposal, or ``invalid`` when the form or one
    of its files does not validate.
    """

    def __init__(self, form: ProposalForm, context: AdminContext) -> None:
        super().__init__(context)
        self.form = form
        self.proposal: Proposal | None = None

    async def perform(self) -> Broadcast:
        if not await self.form.validate_form(self.context):
            return self.broadcast(Outcome.INVALID)

        attachments_allowed = self.context.settings.attachments_allowed
        attachment: PendingAttachment | None = None
        gallery: list[PendingAttachment] = []

        if process_attachments(self.form, attachments_allowed=attachments_allowed):
            attachment = build_attachment(self.form.attachment)
            if not attachment.valid:
                return self.broadcast(Outcome.INVALID)

        if process_gallery(self.form, attachments_allowed=attachments_allowed):
            gallery = build_gallery(self.form.add_photos)
            if not all(photo.valid for photo in gallery):
                return self.broadcast(Outcome.INVALID)

        writer = None
        if attachment or gallery:
            if self.context.storage is None:
                raise RuntimeError("Attachment storage is not configured")
            writer = AttachmentWriter(self.context.storage)
        try:
            async with self.transaction():
                self.proposal = await self._create_proposal()
                if writer is not None:
                    if attachment is not None:
                        writer.attach(self.proposal, attachment)
                    for photo in gallery:
                        writer.attach(self.proposal, photo)
        except Exception:
            if writer is not None:
                writer.discard_stored()
            raise

        self._notify_followers()
        return self.broadcast(Outcome.OK, self.proposal)

    async def _create_proposal(self) -> Proposal:
        component = self.context.component
        attributes = {
            "component": component,
            "title": self.form.title,
            "body": self.form.body,
            "category_id": self.form.category_id,
            "scope_id": self.form.scope_id,
            "address": self.form.address,
            "latitude": self.form.latitude,
            "longitude": self.form.longitude,
            "official": True,
            "created_by": self.context.user_id,
            "published_at": utcnow(),
            "attachments": [],
        }
        proposal = await traceability.traceable_create(
            self.db,
            Proposal,
            attributes,
            component=component,
            user_id=self.context.user_id,
            visibility=ActionLogVisibility.ALL,
        )
        logger.info("Created official proposal %s", proposal.id)
        return proposal

    def _notify_followers(self) -> None:
        component = self.context.component
        notify(
            "proposal_published",
            entity_type="Proposal",
            entity_id=str(self.proposal.id),
            actor=self.context.user_id,
            recipients=[f"followers:participatory_space:{component.participatory_space_id}"],
            details={"component_id": component.id, "title": self.proposal.title},
        )
