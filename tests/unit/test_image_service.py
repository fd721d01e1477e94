"""Unit tests for ImageService against mongomock and a tmp_path storage root."""

from datetime import timedelta

import pytest
from structlog.testing import capture_logs

from errors import NotFoundError, ValidationError
from repositories.image_repository import IMAGES_COLLECTION
from schemas.models.image import IMAGE_STATUS_DELETED
from services.image_service import MAX_PAGE_SIZE, MAX_SKIP, ImageService, page_count


def png_bytes(n: int = 16) -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * n


def upload(service, app_id="gallery", **kwargs):
    kwargs.setdefault("original_file_name", "photo.png")
    return service.upload(app_id, app_id, png_bytes(), "image/png", **kwargs)


# ── upload ────────────────────────────────────────────────────────────────────


class TestUpload:
    def test_returns_full_record(self, image_service, storage):
        image = upload(image_service, tags=["cat", " cat", "pet"], description="A cat", alt="cat")
        assert image.app_id == "gallery"
        assert image.uploaded_by == "gallery"
        assert image.file_name == f"{image.image_id}.png"
        assert image.original_file_name == "photo.png"
        assert image.mime_type == "image/png"
        assert image.size == len(png_bytes())
        assert image.tags == ["cat", "pet"]
        assert image.is_active
        assert storage.read("gallery", image.file_name) == png_bytes()

    def test_ids_are_unique(self, image_service):
        ids = {upload(image_service).image_id for _ in range(20)}
        assert len(ids) == 20

    def test_defaults_for_optional_metadata(self, image_service):
        image = image_service.upload("gallery", "gallery", png_bytes(), "image/png")
        assert image.original_file_name == ""
        assert image.tags == []
        assert image.description == ""
        assert image.alt == ""

    @pytest.mark.parametrize(
        "name, mime, ext",
        [
            ("holiday.JPEG", "image/jpeg", ".jpeg"),
            ("no_extension", "image/jpeg", ".jpg"),
            ("icon.svg", "image/svg+xml", ".svg"),
            (None, "image/webp", ".webp"),
        ],
    )
    def test_extension_normalization(self, image_service, name, mime, ext):
        image = image_service.upload("gallery", "gallery", png_bytes(), mime, name)
        assert image.file_name.endswith(ext)

    def test_unsupported_mime_persists_nothing(self, image_service, storage, mock_db):
        with pytest.raises(ValidationError):
            image_service.upload("gallery", "gallery", b"%PDF", "application/pdf", "a.pdf")
        assert mock_db[IMAGES_COLLECTION].count_documents({}) == 0
        assert not (storage.root / "gallery").exists()

    def test_oversized_persists_nothing(self, image_repo, storage, mock_db):
        service = ImageService(image_repo, storage, max_upload_bytes=8)
        with pytest.raises(ValidationError) as exc:
            service.upload("gallery", "gallery", png_bytes(16), "image/png", "a.png")
        assert exc.value.details == {"max_bytes": 8}
        assert mock_db[IMAGES_COLLECTION].count_documents({}) == 0
        assert not (storage.root / "gallery").exists()

    @pytest.mark.parametrize("content", [None, b""])
    def test_empty_content_rejected(self, image_service, content):
        with pytest.raises(ValidationError, match="No file provided"):
            image_service.upload("gallery", "gallery", content, "image/png")

    def test_missing_tenant_rejected(self, image_service):
        with pytest.raises(ValidationError):
            image_service.upload("", "gallery", png_bytes(), "image/png")

    def test_exact_limit_is_accepted(self, image_repo, storage):
        service = ImageService(image_repo, storage, max_upload_bytes=len(png_bytes()))
        assert service.upload("gallery", "gallery", png_bytes(), "image/png").size == len(
            png_bytes()
        )

    def test_insert_failure_propagates(self, image_service, image_repo, monkeypatch):
        def boom(image):
            raise RuntimeError("db down")

        monkeypatch.setattr(image_repo, "insert", boom)
        with pytest.raises(RuntimeError):
            upload(image_service)


# ── get ───────────────────────────────────────────────────────────────────────


class TestGet:
    def test_round_trip(self, image_service):
        created = upload(image_service, tags=["a"], description="d", alt="x")
        fetched = image_service.get_by_id(created.image_id)
        assert fetched.model_dump(exclude={"id"}) == created.model_dump(exclude={"id"})

    def test_get_is_idempotent(self, image_service):
        created = upload(image_service)
        assert image_service.get_by_id(created.image_id) == image_service.get_by_id(
            created.image_id
        )

    def test_unknown_id(self, image_service):
        with pytest.raises(NotFoundError):
            image_service.get_by_id("does-not-exist")

    def test_other_tenant_sees_not_found(self, image_service):
        created = upload(image_service, app_id="one")
        with pytest.raises(NotFoundError):
            image_service.get_by_id(created.image_id, app_id="two")
        assert image_service.get_by_id(created.image_id, app_id="one").app_id == "one"

    def test_get_file(self, image_service):
        created = upload(image_service)
        image, content = image_service.get_file(created.image_id)
        assert image.image_id == created.image_id
        assert content == png_bytes()

    def test_missing_file_is_not_found(self, image_service, storage):
        created = upload(image_service)
        storage.delete("gallery", created.file_name)
        with capture_logs() as logs:
            with pytest.raises(NotFoundError, match="not found on disk"):
                image_service.get_file(created.image_id)

        missing = [e for e in logs if e["event"] == "image_file_missing"]
        assert len(missing) == 1
        assert missing[0]["log_level"] == "error"
        assert missing[0]["image_id"] == created.image_id
        assert missing[0]["app_id"] == "gallery"
        assert missing[0]["file_name"] == created.file_name


# ── list ──────────────────────────────────────────────────────────────────────


class TestList:
    def test_pagination(self, image_service):
        for _ in range(25):
            upload(image_service)
        first, total = image_service.list_images("gallery", page=1, limit=20)
        second, total2 = image_service.list_images("gallery", page=2, limit=20)
        assert total == total2 == 25
        assert len(first) == 20
        assert len(second) == 5
        assert not {i.image_id for i in first} & {i.image_id for i in second}
        assert page_count(total, 20) == 2

    def test_newest_first(self, image_service, mock_db):
        older = upload(image_service)
        newer = upload(image_service)
        mock_db[IMAGES_COLLECTION].update_one(
            {"image_id": older.image_id},
            {"$set": {"created_at": older.created_at - timedelta(hours=1)}},
        )
        images, _ = image_service.list_images("gallery")
        assert [i.image_id for i in images] == [newer.image_id, older.image_id]

    def test_page_past_end_is_empty(self, image_service):
        upload(image_service)
        images, total = image_service.list_images("gallery", page=5, limit=20)
        assert images == []
        assert total == 1

    def test_limit_is_clamped(self, image_service, image_repo, monkeypatch):
        seen = {}
        original = image_repo.list_page

        def spy(query, *, skip, limit):
            seen["limit"] = limit
            return original(query, skip=skip, limit=limit)

        monkeypatch.setattr(image_repo, "list_page", spy)
        image_service.list_images("gallery", limit=1000)
        assert seen["limit"] == MAX_PAGE_SIZE

    @pytest.mark.parametrize("page, limit", [(0, 20), (-1, 20), (1, 0)])
    def test_invalid_paging(self, image_service, page, limit):
        with pytest.raises(ValidationError):
            image_service.list_images("gallery", page=page, limit=limit)

    def test_page_beyond_int64_skip(self, image_service, image_repo, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("list_page must not be reached")

        monkeypatch.setattr(image_repo, "list_page", fail)
        with pytest.raises(ValidationError) as exc:
            image_service.list_images("gallery", page=10**19, limit=20)
        assert exc.value.field == "page"

    def test_largest_page_within_int64_is_allowed(self, image_service):
        upload(image_service)
        images, total = image_service.list_images("gallery", page=MAX_SKIP // 20, limit=20)
        assert images == []
        assert total == 1

    def test_tags_match_any(self, image_service):
        cat = upload(image_service, tags=["cat"])
        dog = upload(image_service, tags=["dog"])
        upload(image_service, tags=["bird"])
        images, total = image_service.list_images("gallery", tags=["cat", "dog"])
        assert total == 2
        assert {i.image_id for i in images} == {cat.image_id, dog.image_id}

    @pytest.mark.parametrize("term", ["cat", "Cat", "CAT"])
    def test_search_is_case_insensitive(self, image_service, term):
        match = upload(image_service, description="A fluffy Cat")
        upload(image_service, description="A dog")
        images, total = image_service.list_images("gallery", search=term)
        assert total == 1
        assert images[0].image_id == match.image_id

    def test_search_covers_filename_and_alt(self, image_service):
        by_name = upload(image_service, original_file_name="sunset.png")
        by_alt = upload(image_service, alt="Sunset over water")
        upload(image_service, description="noon")
        images, _ = image_service.list_images("gallery", search="sunset")
        assert {i.image_id for i in images} == {by_name.image_id, by_alt.image_id}

    def test_search_is_literal(self, image_service):
        upload(image_service, description="a.b")
        upload(image_service, description="axb")
        images, total = image_service.list_images("gallery", search="a.b")
        assert total == 1
        assert images[0].description == "a.b"

    def test_scoped_to_tenant_and_active(self, image_service):
        mine = upload(image_service, app_id="one")
        gone = upload(image_service, app_id="one")
        upload(image_service, app_id="two")
        image_service.delete(gone.image_id)
        images, total = image_service.list_images("one")
        assert total == 1
        assert images[0].image_id == mine.image_id


# ── update ────────────────────────────────────────────────────────────────────


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, image_service):
        created = upload(image_service, tags=["a"], description="old", alt="alt")
        updated = image_service.update_metadata(created.image_id, description="new")
        assert updated.description == "new"
        assert updated.tags == ["a"]
        assert updated.alt == "alt"
        assert updated.updated_at is not None
        assert image_service.get_by_id(created.image_id).description == "new"

    def test_tags_replaced_and_normalized(self, image_service):
        created = upload(image_service, tags=["a"])
        updated = image_service.update_metadata(created.image_id, tags=[" b", "b", "c"])
        assert updated.tags == ["b", "c"]

    def test_empty_update_is_noop(self, image_service):
        created = upload(image_service, description="same")
        unchanged = image_service.update_metadata(created.image_id)
        assert unchanged.description == "same"
        assert unchanged.updated_at is None

    def test_deleted_image_cannot_be_updated(self, image_service):
        created = upload(image_service)
        image_service.delete(created.image_id)
        with pytest.raises(NotFoundError):
            image_service.update_metadata(created.image_id, description="x")

    def test_other_tenant_cannot_update(self, image_service):
        created = upload(image_service, app_id="one")
        with pytest.raises(NotFoundError):
            image_service.update_metadata(created.image_id, alt="x", app_id="two")


# ── delete ────────────────────────────────────────────────────────────────────


class TestDelete:
    def test_delete_hides_record_and_removes_file(self, image_service, storage, mock_db):
        created = upload(image_service)
        image_service.delete(created.image_id)

        with pytest.raises(NotFoundError):
            image_service.get_by_id(created.image_id)
        with pytest.raises(NotFoundError):
            image_service.get_file(created.image_id)
        assert not storage.exists("gallery", created.file_name)

        stored = mock_db[IMAGES_COLLECTION].find_one({"image_id": created.image_id})
        assert stored["status"] == IMAGE_STATUS_DELETED

    def test_second_delete_is_not_found(self, image_service):
        created = upload(image_service)
        image_service.delete(created.image_id)
        with pytest.raises(NotFoundError):
            image_service.delete(created.image_id)

    def test_delete_with_missing_file_still_succeeds(self, image_service, storage):
        created = upload(image_service)
        storage.delete("gallery", created.file_name)
        image_service.delete(created.image_id)
        with pytest.raises(NotFoundError):
            image_service.get_by_id(created.image_id)

    def test_other_tenant_cannot_delete(self, image_service):
        created = upload(image_service, app_id="one")
        with pytest.raises(NotFoundError):
            image_service.delete(created.image_id, app_id="two")
        assert image_service.get_by_id(created.image_id).is_active


def test_page_count():
    assert page_count(0, 20) == 0
    assert page_count(20, 20) == 1
    assert page_count(21, 20) == 2
