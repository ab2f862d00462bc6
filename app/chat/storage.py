"""
Attachment blob storage.

Thin adapter over Django's storage API (default_storage, so S3 or local
disk depending on STORAGES). Files are written before the message
transaction and deleted again if it rolls back, or after a group is deleted.

Usage:
    storage = AttachmentStorage()
    meta = storage.store(group.id, uploaded_file)
    storage.delete([meta["storage_path"]])
"""

from __future__ import annotations

import logging
import mimetypes
import os
import secrets

from django.core.files.images import get_image_dimensions
from django.core.files.storage import default_storage

from chat.constants import ATTACHMENT_CONFIG
from chat.models import FileType

logger = logging.getLogger(__name__)


class StorageCleanupError(Exception):
    """Some attachment files could not be deleted."""

    def __init__(self, paths: list[str]):
        self.paths = paths
        super().__init__(f"Could not delete {len(paths)} attachment file(s)")


def detect_file_type(content_type: str | None, file_name: str = "") -> str:
    """Map a MIME type (or the file extension) to a FileType value."""
    if not content_type:
        content_type, _ = mimetypes.guess_type(file_name)
    if not content_type:
        return FileType.OTHER
    major = content_type.split("/")[0].lower()
    return ATTACHMENT_CONFIG.MIME_FILE_TYPES.get(major, FileType.OTHER)


class AttachmentStorage:
    """Stores uploaded attachment files and removes them again."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def store(self, group_id: int, uploaded_file) -> dict:
        """
        Save one uploaded file.

        Returns:
            Attachment metadata ready for MessageAttachment(**meta)
        """
        original_name = os.path.basename(getattr(uploaded_file, "name", "") or "file")
        file_type = detect_file_type(
            getattr(uploaded_file, "content_type", None), original_name
        )

        width = height = None
        if file_type == FileType.IMAGE:
            try:
                width, height = get_image_dimensions(uploaded_file)
            except (OSError, ValueError):
                logger.debug(f"Could not read image dimensions of {original_name}")
            if hasattr(uploaded_file, "seek"):
                uploaded_file.seek(0)

        path = self.storage.save(
            f"{ATTACHMENT_CONFIG.STORAGE_PREFIX}/{group_id}/"
            f"{secrets.token_hex(8)}_{original_name}",
            uploaded_file,
        )

        return {
            "url": self.storage.url(path),
            "storage_path": path,
            "file_type": file_type,
            "file_name": original_name,
            "file_size": getattr(uploaded_file, "size", None) or self.storage.size(path),
            "width": width,
            "height": height,
        }

    def delete(self, paths: list[str]) -> list[str]:
        """
        Delete stored files.

        Failures are logged, never raised, so a rolled-back send can always
        clean up what it stored.

        Returns:
            Paths that could not be deleted
        """
        failed = []
        for path in paths:
            if not path:
                continue
            try:
                self.storage.delete(path)
            except Exception:
                logger.exception(f"Failed to delete attachment file {path}")
                failed.append(path)
        return failed
