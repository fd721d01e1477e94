"""
Image Store service.

Owns the lifecycle of an image: the file under the tenant's storage
directory plus its metadata document.

Ordering rules:
- upload writes the file before inserting the document, so every reachable
  document has a backing file. A failed insert leaves an unreferenced file
  behind, which is harmless.
- delete flips the status before removing the file; reads require ACTIVE,
  so the file is unreachable from that point on whether or not it is gone yet.
"""

from __future__ import annotations

import math
from typing import Optional

from errors import NotFoundError, ValidationError
from infrastructure.storage.protocol import ImageStorage
from repositories.image_repository import ImageRepository, build_list_filter
from schemas.models.image import IMAGE_STATUS_ACTIVE, ImageDoc
from shared.datetime_utils import utc_now
from shared.generators import generate_image_id
from shared.logging import get_logger
from shared.validators import normalize_extension, normalize_tags, validate_mime_type

log = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# BSON encodes skip as a signed 64-bit integer
MAX_SKIP = 2**63 - 1


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class ImageService:
    def __init__(
        self,
        images: ImageRepository,
        storage: ImageStorage,
        *,
        max_upload_bytes: int,
    ) -> None:
        self._images = images
        self._storage = storage
        self.max_upload_bytes = max_upload_bytes

    def upload(
        self,
        app_id: str,
        uploaded_by: str,
        content: Optional[bytes],
        mime_type: Optional[str],
        original_file_name: Optional[str] = None,
        *,
        tags: Optional[list[str]] = None,
        description: Optional[str] = None,
        alt: Optional[str] = None,
    ) -> ImageDoc:
        """Store a new image and return its full metadata record.

        Raises:
            ValidationError: missing tenant, missing/empty/oversized content,
                or a MIME type outside the allow-list. Nothing is persisted.
        """
        if not app_id:
            raise ValidationError("app id is required", field="app_id")
        if not content:
            raise ValidationError("No file provided", field="file")
        if len(content) > self.max_upload_bytes:
            raise ValidationError(
                f"File too large: {len(content)} bytes exceeds the "
                f"{self.max_upload_bytes} byte limit",
                field="file",
                details={"max_bytes": self.max_upload_bytes},
            )
        mime_type = validate_mime_type(mime_type)

        image_id = generate_image_id()
        file_name = f"{image_id}{normalize_extension(original_file_name, mime_type)}"

        self._storage.write(app_id, file_name, content)

        image = ImageDoc(
            image_id=image_id,
            app_id=app_id,
            file_name=file_name,
            original_file_name=original_file_name or "",
            mime_type=mime_type,
            size=len(content),
            tags=normalize_tags(tags),
            description=description or "",
            alt=alt or "",
            status=IMAGE_STATUS_ACTIVE,
            uploaded_by=uploaded_by,
            created_at=utc_now(),
        )
        try:
            self._images.insert(image)
        except Exception:
            log.warning(
                "image_record_insert_failed",
                image_id=image_id,
                app_id=app_id,
                orphan_file=file_name,
                exc_info=True,
            )
            raise

        log.info(
            "image_uploaded",
            image_id=image_id,
            app_id=app_id,
            mime_type=mime_type,
            size=image.size,
        )
        return image

    def get_by_id(self, image_id: str, app_id: Optional[str] = None) -> ImageDoc:
        """Return the ACTIVE image, optionally restricted to tenant *app_id*.

        Deleted, foreign and unknown images are indistinguishable: all raise
        NotFoundError.
        """
        image = self._images.find_active(image_id)
        if image is None or (app_id is not None and image.app_id != app_id):
            raise NotFoundError("Image not found")
        return image

    def get_file(self, image_id: str, app_id: Optional[str] = None) -> tuple[ImageDoc, bytes]:
        """Return the ACTIVE image and its bytes.

        A missing file behind an active record is a data-integrity fault; it is
        logged as such and surfaces to the caller as NotFoundError.
        """
        image = self.get_by_id(image_id, app_id)
        try:
            content = self._storage.read(image.app_id, image.file_name)
        except FileNotFoundError:
            log.error(
                "image_file_missing",
                image_id=image.image_id,
                app_id=image.app_id,
                file_name=image.file_name,
            )
            raise NotFoundError("Image file not found on disk")
        return image, content

    def list_images(
        self,
        app_id: str,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
    ) -> tuple[list[ImageDoc], int]:
        """One page of the tenant's active images, newest first, plus the total."""
        if not app_id:
            raise ValidationError("app id is required", field="app_id")
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if limit < 1:
            raise ValidationError("limit must be >= 1", field="limit")
        limit = min(limit, MAX_PAGE_SIZE)
        skip = (page - 1) * limit
        if skip > MAX_SKIP:
            raise ValidationError("page is out of range", field="page")

        query = build_list_filter(
            app_id, tags=normalize_tags(tags) or None, search=(search or "").strip() or None
        )
        images = self._images.list_page(query, skip=skip, limit=limit)
        total = self._images.count(query)
        return images, total

    def update_metadata(
        self,
        image_id: str,
        *,
        tags: Optional[list[str]] = None,
        description: Optional[str] = None,
        alt: Optional[str] = None,
        app_id: Optional[str] = None,
    ) -> ImageDoc:
        """Partially update tags/description/alt; None means "leave as is".

        Deleted images cannot be updated (NotFoundError).
        """
        image = self.get_by_id(image_id, app_id)

        fields: dict = {}
        if tags is not None:
            fields["tags"] = normalize_tags(tags)
        if description is not None:
            fields["description"] = description
        if alt is not None:
            fields["alt"] = alt
        if not fields:
            return image

        updated = self._images.update_active(image_id, fields, updated_at=utc_now())
        if updated is None:
            # deleted between the lookup and the update
            raise NotFoundError("Image not found")
        log.info("image_metadata_updated", image_id=image_id, fields=sorted(fields))
        return updated

    def delete(self, image_id: str, app_id: Optional[str] = None) -> None:
        """Soft-delete the image and remove its file.

        Not idempotent: a second call raises NotFoundError.
        """
        image = self.get_by_id(image_id, app_id)
        if not self._images.mark_deleted(image_id, updated_at=utc_now()):
            raise NotFoundError("Image not found")

        removed = self._storage.delete(image.app_id, image.file_name)
        log.info(
            "image_deleted",
            image_id=image_id,
            app_id=image.app_id,
            file_removed=removed,
        )
