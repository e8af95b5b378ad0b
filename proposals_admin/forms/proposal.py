"""Admin form for official proposals."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from pydantic import Field
from sqlalchemy import select

from proposals_admin.db.models import Category, Proposal, Scope
from proposals_admin.forms.attachment import AttachmentForm, FilePayload, file_errors
from proposals_admin.forms.base import INVALID, Form, is_blank

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

logger = logging.getLogger(__name__)

_REPEATED_MARKS = re.compile(r"[!?¡¿]{2,}")
_LETTERS = re.compile(r"[^\W\d_]")


def etiquette_errors(text: str) -> list[str]:
    """Writing etiquette checks for proposal titles and bodies."""
    errors: list[str] = []
    letters = _LETTERS.findall(text)
    if len(letters) >= 5:
        uppercase = sum(1 for letter in letters if letter.isupper())
        if uppercase / len(letters) > 0.25:
            errors.append("is using too many capital letters (over 25% of the text)")
    if _REPEATED_MARKS.search(text):
        errors.append("is using too many marks")
    if letters and text.lstrip()[:1].islower():
        errors.append("must start with a capital letter")
    return errors


class ProposalForm(Form):
    """
    Create/update form for official proposals.

    ``photos`` lists the ids of the gallery photos to keep when updating;
    None keeps every photo. ``add_photos`` are new gallery images.
    """

    title: str = ""
    body: str = ""
    address: str | None = None
    has_address: bool = False
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    category_id: int | None = None
    scope_id: int | None = None
    attachment: AttachmentForm | None = None
    photos: list[int] | None = None
    add_photos: list[FilePayload] = Field(default_factory=list)

    @classmethod
    def from_model(cls, proposal: Proposal) -> ProposalForm:
        """Form prefilled from an existing proposal, with a blank attachment."""
        return cls(
            title=proposal.title,
            body=proposal.body,
            address=proposal.address,
            has_address=bool(proposal.address),
            latitude=proposal.latitude,
            longitude=proposal.longitude,
            category_id=proposal.category_id,
            scope_id=proposal.scope_id,
            attachment=AttachmentForm(),
            photos=[photo.id for photo in proposal.photos],
        )

    @classmethod
    def blank(cls) -> ProposalForm:
        return cls(attachment=AttachmentForm())

    @property
    def geocoded(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def has_attachment(self) -> bool:
        return self.attachment is not None and self.attachment.file is not None

    async def run_validations(self, context: AdminContext) -> None:
        component_settings = context.settings

        if self.validate_presence("title"):
            self.validate_length(
                "title",
                minimum=component_settings.title_min_length,
                maximum=component_settings.title_max_length,
            )
            for message in etiquette_errors(self.title):
                self.add_error("title", message)

        if self.validate_presence("body"):
            self.validate_length("body", minimum=component_settings.body_min_length)
            for message in etiquette_errors(self.body):
                self.add_error("body", message)

        await self._validate_category(context)
        await self._validate_scope(context)
        await self._validate_address(context)

        if self.attachment is not None and not await self.attachment.validate_form(context):
            for attribute, messages in self.attachment.errors.items():
                for message in messages:
                    self.add_error(f"attachment.{attribute}", message)

        for upload in self.add_photos:
            for message in file_errors(upload, images_only=True):
                self.add_error("add_photos", f"{upload.filename}: {message}")

    async def _validate_category(self, context: AdminContext) -> None:
        if self.category_id is None:
            return
        category_id = await context.db.scalar(
            select(Category.id).where(
                Category.id == self.category_id,
                Category.participatory_space_id == context.participatory_space_id,
            )
        )
        if category_id is None:
            self.add_error("category_id", INVALID)

    async def _validate_scope(self, context: AdminContext) -> None:
        if self.scope_id is None:
            return
        scope_id = await context.db.scalar(
            select(Scope.id).where(
                Scope.id == self.scope_id,
                Scope.organization_id == context.organization_id,
            )
        )
        if scope_id is None:
            self.add_error("scope_id", INVALID)

    async def _validate_address(self, context: AdminContext) -> None:
        if not (context.settings.geocoding_enabled and self.has_address):
            return

        if is_blank(self.address):
            self.add_error("address", "can't be blank")
            return

        if self.geocoded or context.geocoder is None:
            return

        coordinates = await context.geocoder.coordinates(self.address)
        if coordinates is None:
            logger.info("Proposal address could not be geocoded", extra={"address": self.address})
            self.add_error("address", "could not be geocoded")
            return

        self.latitude, self.longitude = coordinates
