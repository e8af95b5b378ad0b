"""Command that updates an official proposal from the admin form."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from proposals_admin.commands.attachments import (
    AttachmentWriter,
    PendingAttachment,
    build_attachment,
    build_gallery,
    photo_cleanup,
    process_attachments,
    process_gallery,
)
from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.core import traceability
from proposals_admin.domain.enums import ActionLogVisibility

if TYPE_CHECKING:
    from proposals_admin.db.models import Proposal
    from proposals_admin.domain.context import AdminContext
    from proposals_admin.forms.proposal import ProposalForm

logger = logging.getLogger(__name__)


class UpdateProposal(Command):
    """
    Updates an official proposal, its gallery and its document attachment.

    Broadcasts ``ok`` with the proposal, or ``invalid`` (leaving the proposal
    untouched) when the form or one of its files does not validate.
    """

    def __init__(self, form: ProposalForm, proposal: Proposal, context: AdminContext) -> None:
        super().__init__(context)
        self.form = form
        self.proposal = proposal

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

        storage = self.context.storage
        if (attachment or gallery) and storage is None:
            raise RuntimeError("Attachment storage is not configured")
        writer = AttachmentWriter(storage) if storage is not None else None
        removed = []
        try:
            async with self.transaction():
                await self._update_proposal()
                if writer is not None:
                    for photo in gallery:
                        writer.attach(self.proposal, photo)
                    if attachment is not None:
                        writer.attach(self.proposal, attachment)
                removed = photo_cleanup(
                    self.proposal,
                    self.form.photos,
                    created=writer.created if writer is not None else None,
                )
        except Exception:
            if writer is not None:
                writer.discard_stored()
            raise

        if storage is not None:
            for photo in removed:
                storage.delete(photo.file_key)

        return self.broadcast(Outcome.OK, self.proposal)

    async def _update_proposal(self) -> None:
        attributes = {
            "title": self.form.title,
            "body": self.form.body,
            "category_id": self.form.category_id,
            "scope_id": self.form.scope_id,
            "address": self.form.address,
            "latitude": self.form.latitude,
            "longitude": self.form.longitude,
        }
        await traceability.traceable_update(
            self.db,
            self.proposal,
            attributes,
            component=self.context.component,
            user_id=self.context.user_id,
            visibility=ActionLogVisibility.ALL,
        )
        logger.info("Updated official proposal %s", self.proposal.id)
