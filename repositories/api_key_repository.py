"""
MongoDB access for the `api-keys` collection.

Numeric key ids come from a shared `counters` document so the provisioning
CLI can address keys by a short, stable number.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from schemas.models.api_key import ApiKeyDoc

API_KEYS_COLLECTION = "api-keys"
COUNTERS_COLLECTION = "counters"
API_KEY_COUNTER = "api_key_id"
API_KEY_ID_START = 1000


class ApiKeyRepository:
    def __init__(self, db: Database) -> None:
        self._col = db[API_KEYS_COLLECTION]
        self._counters = db[COUNTERS_COLLECTION]

    def ensure_indexes(self) -> None:
        self._col.create_index([("api_key_id", ASCENDING)], unique=True)
        self._col.create_index([("key_hash", ASCENDING)], unique=True)
        self._col.create_index([("app_name", ASCENDING), ("active", ASCENDING)])
        # At most one active key per app; revoked keys may share the name
        self._col.create_index(
            [("app_name", ASCENDING)],
            name="app_name_active_unique",
            unique=True,
            partialFilterExpression={"active": True},
        )

    def next_id(self) -> int:
        counter = self._counters.find_one_and_update(
            {"_id": API_KEY_COUNTER},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return API_KEY_ID_START + int(counter["seq"]) - 1

    def insert(self, key: ApiKeyDoc) -> ApiKeyDoc:
        result = self._col.insert_one(key.to_mongo())
        key.id = result.inserted_id
        return key

    def find_by_hash(self, key_hash: str) -> Optional[ApiKeyDoc]:
        return ApiKeyDoc.from_mongo(self._col.find_one({"key_hash": key_hash}))

    def find_active_by_app_name(self, app_name: str) -> Optional[ApiKeyDoc]:
        doc = self._col.find_one({"app_name": app_name, "active": True})
        return ApiKeyDoc.from_mongo(doc)

    def list_all(self) -> list[ApiKeyDoc]:
        cursor = self._col.find({}).sort(
            [("created_at", DESCENDING), ("api_key_id", DESCENDING)]
        )
        return [ApiKeyDoc.from_mongo(doc) for doc in cursor]

    def update_fields(
        self, api_key_id: int, fields: dict, *, updated_at: datetime
    ) -> Optional[ApiKeyDoc]:
        """Set *fields* on the key and return the updated document (None if unknown)."""
        doc = self._col.find_one_and_update(
            {"api_key_id": api_key_id},
            {"$set": {**fields, "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return ApiKeyDoc.from_mongo(doc)
