import cloudinary.uploader
import pytest
from fastapi.testclient import TestClient

from media_api.adapters.storage import build_media_store
from media_api.config.settings import Settings, get_settings
from media_api.main import create_app
from tests.consts import (
    TEST_CLOUD_API_KEY,
    TEST_CLOUD_API_SECRET,
    TEST_CLOUD_NAME,
    TEST_CLOUDINARY_FOLDER,
    TEST_MAX_UPLOAD_BYTES,
)
from tests.fixtures.media_fixtures import FakeCloudinary


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="local",
        upload_dir=str(tmp_path / "uploads"),
        temp_dir=str(tmp_path / "temp-uploads"),
        max_upload_bytes=TEST_MAX_UPLOAD_BYTES,
    )


@pytest.fixture
def cloudinary_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="cloudinary",
        cloud_name=TEST_CLOUD_NAME,
        cloud_api_key=TEST_CLOUD_API_KEY,
        cloud_api_secret=TEST_CLOUD_API_SECRET,
        cloudinary_folder=TEST_CLOUDINARY_FOLDER,
        temp_dir=str(tmp_path / "temp-uploads"),
        max_upload_bytes=TEST_MAX_UPLOAD_BYTES,
    )


@pytest.fixture
def fake_cloudinary(monkeypatch) -> FakeCloudinary:
    """Replace the Cloudinary uploader so no request ever leaves the process."""
    fake = FakeCloudinary()
    monkeypatch.setattr(cloudinary.uploader, "upload", fake.upload)
    monkeypatch.setattr(cloudinary.uploader, "destroy", fake.destroy)
    return fake


@pytest.fixture
def local_store(settings):
    return build_media_store(settings)


@pytest.fixture
def cloudinary_store(cloudinary_settings, fake_cloudinary):
    return build_media_store(cloudinary_settings)


@pytest.fixture
def app(settings, local_store):
    return create_app(settings, local_store)


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def cloudinary_client(cloudinary_settings, cloudinary_store) -> TestClient:
    with TestClient(create_app(cloudinary_settings, cloudinary_store)) as test_client:
        yield test_client
