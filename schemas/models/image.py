"""
Image document model.

Maps to the `images` MongoDB collection. Each document describes one file
stored at ``{IMAGE_DIR}/{app_id}/{file_name}``.

Status values: ACTIVE | DELETED
Deletion is logical: the document stays with status DELETED while the file
itself is removed from disk.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel

IMAGE_STATUS_ACTIVE = "ACTIVE"
IMAGE_STATUS_DELETED = "DELETED"


class ImageDoc(MongoBaseModel):
    """Document model for the `images` collection."""

    image_id: str
    app_id: str
    file_name: str
    original_file_name: str = ""
    mime_type: str
    size: int
    tags: list[str] = []
    description: str = ""
    alt: str = ""
    status: str = IMAGE_STATUS_ACTIVE
    uploaded_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == IMAGE_STATUS_ACTIVE
