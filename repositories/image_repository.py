"""
MongoDB access for the `images` collection.

Queries only; business rules (status checks, tenant scoping, pagination
bounds) live in services.image_service.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from schemas.models.image import IMAGE_STATUS_ACTIVE, IMAGE_STATUS_DELETED, ImageDoc

IMAGES_COLLECTION = "images"

SEARCH_FIELDS = ("description", "original_file_name", "alt")

# Newest first; _id breaks ties between documents created in the same millisecond
NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def build_list_filter(
    app_id: str,
    *,
    tags: Optional[list[str]] = None,
    search: Optional[str] = None,
) -> dict:
    """Mongo filter for active images of *app_id*.

    tags: match-any. search: case-insensitive literal substring over
    description, original filename and alt text (any of the three).
    """
    query: dict = {"app_id": app_id, "status": IMAGE_STATUS_ACTIVE}
    if tags:
        query["tags"] = {"$in": list(tags)}
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS
        ]
    return query


class ImageRepository:
    def __init__(self, db: Database) -> None:
        self._col = db[IMAGES_COLLECTION]

    def ensure_indexes(self) -> None:
        self._col.create_index([("image_id", ASCENDING)], unique=True)
        self._col.create_index(
            [("app_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)]
        )
        self._col.create_index([("tags", ASCENDING)])

    def insert(self, image: ImageDoc) -> ImageDoc:
        result = self._col.insert_one(image.to_mongo())
        image.id = result.inserted_id
        return image

    def find_active(self, image_id: str) -> Optional[ImageDoc]:
        doc = self._col.find_one({"image_id": image_id, "status": IMAGE_STATUS_ACTIVE})
        return ImageDoc.from_mongo(doc)

    def list_page(self, query: dict, *, skip: int, limit: int) -> list[ImageDoc]:
        cursor = self._col.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit)
        return [ImageDoc.from_mongo(doc) for doc in cursor]

    def count(self, query: dict) -> int:
        return self._col.count_documents(query)

    def update_active(
        self, image_id: str, fields: dict, *, updated_at: datetime
    ) -> Optional[ImageDoc]:
        """Set *fields* on an ACTIVE image; None when it is missing or deleted."""
        doc = self._col.find_one_and_update(
            {"image_id": image_id, "status": IMAGE_STATUS_ACTIVE},
            {"$set": {**fields, "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return ImageDoc.from_mongo(doc)

    def mark_deleted(self, image_id: str, *, updated_at: datetime) -> bool:
        """Flip an ACTIVE image to DELETED. False if it was not active."""
        result = self._col.update_one(
            {"image_id": image_id, "status": IMAGE_STATUS_ACTIVE},
            {"$set": {"status": IMAGE_STATUS_DELETED, "updated_at": updated_at}},
        )
        return result.modified_count == 1
