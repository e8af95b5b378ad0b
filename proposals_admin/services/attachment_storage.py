"""
Attachment storage collaborator.

Stores uploaded attachment files and hands back an opaque ``file_key``.
The default backend writes to a local directory, which is enough for
development and tests; deployments plug their own storage in behind the
same ``AttachmentStorage`` protocol.
"""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from proposals_admin.core.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file as received from the client."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class AttachmentStorage(Protocol):
    def store(self, upload: UploadedFile) -> str:
        """Persist ``upload`` and return its file key."""
        ...

    def delete(self, file_key: str) -> None:
        """Remove a stored file. Unknown keys are ignored."""
        ...


def safe_filename(filename: str) -> str:
    """Strip directories and unusual characters from a client supplied filename."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "file"


class FilesystemAttachmentStorage:
    """
    Filesystem storage backend for attachments.

    Files are written as ``{base_dir}/{sha[:2]}/{uuid}-{filename}``.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir or settings.attachments_dir)

    def _path_for(self, file_key: str) -> Path:
        path = (self.base_dir / file_key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValueError(f"File key escapes the attachments directory: {file_key}")
        return path

    def store(self, upload: UploadedFile) -> str:
        digest = hashlib.sha256(upload.data).hexdigest()
        file_key = f"{digest[:2]}/{uuid.uuid4().hex}-{safe_filename(upload.filename)}"

        path = self._path_for(file_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(upload.data)

        logger.info(
            f"Stored attachment: {file_key} ({upload.size} bytes)",
            extra={"content_type": upload.content_type},
        )
        return file_key

    def delete(self, file_key: str) -> None:
        path = self._path_for(file_key)
        path.unlink(missing_ok=True)
        logger.info(f"Deleted attachment: {file_key}")


_storage: AttachmentStorage | None = None


def get_attachment_storage() -> AttachmentStorage:
    """FastAPI dependency returning the shared attachment storage."""
    global _storage
    if _storage is None:
        _storage = FilesystemAttachmentStorage()
    return _storage
