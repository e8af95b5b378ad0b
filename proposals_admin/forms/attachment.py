"""Attachment form and uploaded file payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Base64Bytes, BaseModel, Field

from proposals_admin.core.config import settings
from proposals_admin.db.models import IMAGE_CONTENT_TYPES
from proposals_admin.forms.base import Form, is_blank
from proposals_admin.services.attachment_storage import UploadedFile

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext


class FilePayload(BaseModel):
    """A file sent inside a JSON body, its content base64-encoded."""

    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=255)
    data: Base64Bytes

    def to_upload(self) -> UploadedFile:
        return UploadedFile(
            filename=self.filename, content_type=self.content_type.lower(), data=self.data
        )


def file_errors(upload: FilePayload, *, images_only: bool = False) -> list[str]:
    """Size and content type problems of an uploaded file."""
    errors: list[str] = []
    content_type = upload.content_type.lower()

    if images_only and content_type not in IMAGE_CONTENT_TYPES:
        errors.append(f"file type {content_type} is not an allowed image type")
    elif content_type not in settings.attachment_allowed_content_types_list:
        errors.append(f"file type {content_type} is not allowed")

    if len(upload.data) > settings.attachment_max_size_bytes:
        errors.append(f"file is too big (maximum is {settings.attachment_max_size_mb} MB)")
    if not upload.data:
        errors.append("file is empty")

    return errors


class AttachmentForm(Form):
    """
    A single document attached to a proposal.

    A blank attachment (no title, no file) is valid and means "no attachment".
    """

    title: str = ""
    description: str | None = None
    file: FilePayload | None = None

    @property
    def blank(self) -> bool:
        return is_blank(self.title) and self.file is None

    async def run_validations(self, context: AdminContext) -> None:
        if self.blank:
            return

        if self.file is None:
            self.add_error("file", "can't be blank")
        if is_blank(self.title):
            self.add_error("title", "can't be blank")

        if self.file is not None:
            for message in file_errors(self.file):
                self.add_error("file", message)
