"""Unit tests for MongoDB document models."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from schemas.models.api_key import ApiKeyDoc
from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.image import IMAGE_STATUS_ACTIVE, IMAGE_STATUS_DELETED, ImageDoc


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def oid():
    return ObjectId()


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = oid()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(oid())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


# ── MongoBaseModel ─────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_id_alias(self):
        o = oid()
        m = MongoBaseModel.model_validate({"_id": o})
        assert m.id == o

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()

    def test_to_mongo_keeps_set_id(self):
        o = oid()
        assert MongoBaseModel.model_validate({"_id": o}).to_mongo()["_id"] == o


# ── ImageDoc ──────────────────────────────────────────────────────────────────

class TestImageDoc:
    def _make(self, **overrides):
        base = {
            "_id": oid(),
            "image_id": "3f1c2a9e-0000-4000-8000-000000000001",
            "app_id": "gallery",
            "file_name": "3f1c2a9e-0000-4000-8000-000000000001.png",
            "mime_type": "image/png",
            "size": 42,
            "uploaded_by": "gallery",
            "created_at": now(),
        }
        base.update(overrides)
        return ImageDoc.model_validate(base)

    def test_defaults(self):
        doc = self._make()
        assert doc.status == IMAGE_STATUS_ACTIVE
        assert doc.is_active is True
        assert doc.tags == []
        assert doc.description == ""
        assert doc.alt == ""
        assert doc.original_file_name == ""
        assert doc.updated_at is None

    def test_deleted_is_not_active(self):
        assert self._make(status=IMAGE_STATUS_DELETED).is_active is False

    def test_to_mongo_round_trip(self):
        doc = self._make(tags=["cat", "pet"], description="A cat")
        restored = ImageDoc.from_mongo(doc.to_mongo())
        assert restored == doc

    def test_requires_core_fields(self):
        with pytest.raises(ValueError):
            ImageDoc.model_validate({"image_id": "x"})


# ── ApiKeyDoc ─────────────────────────────────────────────────────────────────

class TestApiKeyDoc:
    def test_defaults(self):
        doc = ApiKeyDoc(api_key_id=1000, app_name="gallery", key_hash="ab" * 32)
        assert doc.active is True
        assert doc.permissions == 0
        assert doc.key_prefix == ""

    def test_to_mongo_has_no_raw_key_field(self):
        doc = ApiKeyDoc(api_key_id=1000, app_name="gallery", key_hash="ab" * 32, permissions=3)
        data = doc.to_mongo()
        assert set(data) == {
            "api_key_id",
            "app_name",
            "key_hash",
            "key_prefix",
            "permissions",
            "active",
            "created_at",
            "updated_at",
        }
