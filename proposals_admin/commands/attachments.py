"""Attachment and gallery handling shared by the create and update commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from proposals_admin.db.models import Attachment, Proposal
from proposals_admin.forms.attachment import AttachmentForm, FilePayload, file_errors
from proposals_admin.services.attachment_storage import AttachmentStorage, UploadedFile

if TYPE_CHECKING:
    from proposals_admin.forms.proposal import ProposalForm

logger = logging.getLogger(__name__)


@dataclass
class PendingAttachment:
    """An attachment whose file is validated but not stored yet."""

    title: str
    upload: UploadedFile
    description: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def build_attachment(form: AttachmentForm) -> PendingAttachment:
    """Build the document attachment of a proposal form."""
    return PendingAttachment(
        title=form.title,
        description=form.description,
        upload=form.file.to_upload(),
        errors=file_errors(form.file),
    )


def build_gallery(uploads: list[FilePayload]) -> list[PendingAttachment]:
    """Build one photo attachment per uploaded image, titled after its filename."""
    return [
        PendingAttachment(
            title=upload.filename,
            upload=upload.to_upload(),
            errors=file_errors(upload, images_only=True),
        )
        for upload in uploads
    ]


def process_attachments(form: ProposalForm, *, attachments_allowed: bool) -> bool:
    return attachments_allowed and form.has_attachment


def process_gallery(form: ProposalForm, *, attachments_allowed: bool) -> bool:
    return attachments_allowed and bool(form.add_photos)


class AttachmentWriter:
    """
    Stores files and attaches them to a proposal.

    Keeps track of the stored file keys so a failed transaction can remove
    the files it already wrote.
    """

    def __init__(self, storage: AttachmentStorage) -> None:
        self.storage = storage
        self.stored_keys: list[str] = []
        self.created: list[Attachment] = []

    def attach(self, proposal: Proposal, pending: PendingAttachment) -> Attachment:
        file_key = self.storage.store(pending.upload)
        self.stored_keys.append(file_key)

        attachment = Attachment(
            title=pending.title,
            description=pending.description,
            file_key=file_key,
            filename=pending.upload.filename,
            content_type=pending.upload.content_type,
            file_size=pending.upload.size,
            weight=len(proposal.attachments),
        )
        proposal.attachments.append(attachment)
        self.created.append(attachment)
        return attachment

    def discard_stored(self) -> None:
        for file_key in self.stored_keys:
            self.storage.delete(file_key)
        if self.stored_keys:
            logger.info("Discarded %d stored attachment files", len(self.stored_keys))
        self.stored_keys = []


def photo_cleanup(
    proposal: Proposal,
    kept_photo_ids: list[int] | None,
    *,
    created: list[Attachment] | None = None,
) -> list[Attachment]:
    """Detach the gallery photos that are not listed in ``kept_photo_ids``.

    Photos created in the current command are always kept. The stored files
    of the removed photos are left for the caller to delete after commit.
    """
    if kept_photo_ids is None:
        return []

    kept = set(kept_photo_ids)
    new = {id(attachment) for attachment in created or []}
    removed = [
        photo for photo in proposal.photos if id(photo) not in new and photo.id not in kept
    ]
    for photo in removed:
        proposal.attachments.remove(photo)
    return removed
