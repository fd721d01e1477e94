"""
Response DTOs for image endpoints.

ImageResponse      - POST /image/upload (201), GET /image/{id}, PATCH /image/{id}
ImageListResponse  - GET /image (200)

``created_at`` / ``updated_at`` are ISO 8601 strings in UTC.
The internal MongoDB ``_id`` is never exposed; ``id`` is the image UUID.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.image import ImageDoc
from shared.datetime_utils import ensure_utc


class ImageResponse(BaseModel):
    """Public view of an image record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    app_id: str
    file_name: str
    original_file_name: str
    mime_type: str
    size: int
    tags: list[str]
    description: str
    alt: str
    status: str
    uploaded_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: ImageDoc) -> "ImageResponse":
        return cls(
            id=doc.image_id,
            app_id=doc.app_id,
            file_name=doc.file_name,
            original_file_name=doc.original_file_name,
            mime_type=doc.mime_type,
            size=doc.size,
            tags=list(doc.tags),
            description=doc.description,
            alt=doc.alt,
            status=doc.status,
            uploaded_by=doc.uploaded_by,
            created_at=ensure_utc(doc.created_at),
            updated_at=ensure_utc(doc.updated_at),
        )


class ImageListResponse(BaseModel):
    """Response body for GET /image.

    ``total`` counts every match before pagination; ``pages`` is derived
    from it so clients need not compute it themselves.
    """

    model_config = ConfigDict(populate_by_name=True)

    images: list[ImageResponse]
    total: int
    page: int
    limit: int
    pages: int
