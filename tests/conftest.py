"""
Shared fixtures.

MongoDB is replaced by mongomock and file storage by a pytest tmp_path, so
no test touches a real server or the project's upload directory.
"""

import mongomock
import pytest
import structlog

from infrastructure.storage.local import LocalImageStorage
from repositories.api_key_repository import ApiKeyRepository
from repositories.image_repository import ImageRepository
from services.image_service import ImageService
from services.key_authority import KeyAuthority

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test from an empty directory so no real .env is picked up."""
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture(autouse=True)
def fresh_structlog(monkeypatch):
    """Keep loggers uncached and drop any configuration a test installed."""
    monkeypatch.setenv("LOG_CACHE_LOGGERS", "false")
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient(tz_aware=True)


@pytest.fixture
def mock_db(mongo_client):
    return mongo_client["image-store-test"]


@pytest.fixture
def storage(tmp_path):
    s = LocalImageStorage(tmp_path / "uploads")
    s.ensure_root()
    return s


@pytest.fixture
def key_repo(mock_db):
    repo = ApiKeyRepository(mock_db)
    repo.ensure_indexes()
    return repo


@pytest.fixture
def image_repo(mock_db):
    repo = ImageRepository(mock_db)
    repo.ensure_indexes()
    return repo


@pytest.fixture
def key_authority(key_repo):
    return KeyAuthority(key_repo)


@pytest.fixture
def image_service(image_repo, storage):
    return ImageService(image_repo, storage, max_upload_bytes=MAX_UPLOAD_BYTES)
