"""
Services package for the Proposals Admin API.

Contains the external collaborators the commands talk to (geocoding and
attachment storage) behind small protocols.
"""

from proposals_admin.services.attachment_storage import (
    AttachmentStorage,
    FilesystemAttachmentStorage,
    UploadedFile,
    get_attachment_storage,
)
from proposals_admin.services.geocoding import Geocoder, NominatimGeocoder, get_geocoder

__all__ = [
    "AttachmentStorage",
    "FilesystemAttachmentStorage",
    "Geocoder",
    "NominatimGeocoder",
    "UploadedFile",
    "get_attachment_storage",
    "get_geocoder",
]
