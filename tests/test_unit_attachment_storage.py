"""
Unit tests for the filesystem attachment storage.
"""

import pytest

from proposals_admin.services.attachment_storage import (
    FilesystemAttachmentStorage,
    UploadedFile,
    safe_filename,
)
from tests.conftest import PDF_BYTES


@pytest.fixture
def storage(tmp_path):
    return FilesystemAttachmentStorage(tmp_path / "files")


def _upload(filename: str = "report.pdf") -> UploadedFile:
    return UploadedFile(filename=filename, content_type="application/pdf", data=PDF_BYTES)


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\plan final.pdf", "plan_final.pdf"),
        ("..", "file"),
        ("", "file"),
    ],
)
def test_safe_filename(filename, expected):
    assert safe_filename(filename) == expected


def test_uploaded_file_size():
    assert _upload().size == len(PDF_BYTES)


def test_store_writes_the_file(storage):
    file_key = storage.store(_upload())

    path = storage.base_dir / file_key
    assert path.read_bytes() == PDF_BYTES
    assert file_key.endswith("-report.pdf")


def test_store_gives_unique_keys(storage):
    assert storage.store(_upload()) != storage.store(_upload())


def test_delete_removes_the_file(storage):
    file_key = storage.store(_upload())

    storage.delete(file_key)

    assert not (storage.base_dir / file_key).exists()


def test_delete_ignores_unknown_keys(storage):
    storage.delete("ab/unknown-file.pdf")


def test_keys_cannot_escape_the_base_dir(storage):
    with pytest.raises(ValueError):
        storage.delete("../outside.txt")
