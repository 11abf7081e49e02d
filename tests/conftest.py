"""
Pytest configuration and fixtures for atelier tests.
"""

import hashlib
import io
from collections.abc import Callable, Generator
from datetime import UTC, datetime

import pytest
from PIL import Image

from atelier.config import Settings
from atelier.models.photo import Photo, Tag
from atelier.services.metadata import MetadataService


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture
def settings() -> Settings:
    """Settings with a fake image host and local development sign-in."""
    return Settings(
        environment="test",
        database_path=":memory:",
        cloudinary_cloud_name="demo-cloud",
        cloudinary_upload_preset="portfolio",
        cloudinary_api_key="123456",
        cloudinary_api_secret="s3cret",
        cloudinary_api_url="https://api.example.test/v1_1",
        geocoder_url="https://geo.example.test",
        delete_endpoint_url="https://app.example.test/api/delete-photo",
        request_timeout=5.0,
        dev_user_email="admin@example.com",
        dev_user_password="correct-horse",
        dev_jwt_secret="test-secret",
    )


@pytest.fixture
def metadata_service() -> Generator[MetadataService, None, None]:
    """An in-memory DuckDB metadata service."""
    service = MetadataService(":memory:")
    yield service
    service.close()


def create_test_image(format_type: str = "JPEG", size: tuple[int, int] = (64, 64), color: str = "red") -> bytes:
    """Create a test image in memory."""
    image = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    image.save(buffer, format=format_type)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return create_test_image()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return create_test_image


@pytest.fixture
def make_photo() -> Callable[..., Photo]:
    """
    Factory for in-memory photos. Tags with the same name share one Tag id.
    """
    tags: dict[str, Tag] = {}
    counter = {"n": 0}

    def factory(
        title: str = "Untitled",
        tags_names: list[str] | None = None,
        location: str | None = None,
        taken_at: datetime | None = None,
        created_at: datetime | None = None,
        photo_id: str | None = None,
    ) -> Photo:
        counter["n"] += 1
        n = counter["n"]
        photo_tags = [tags.setdefault(name, Tag(id=f"tag-{name}", name=name)) for name in tags_names or []]
        return Photo(
            id=photo_id or f"photo-{n:03d}",
            image_url=f"https://res.example.test/demo-cloud/image/upload/v1/p{n}.jpg",
            public_id=f"p{n}",
            title=title,
            file_hash=hashlib.sha256(f"photo-{n}".encode()).hexdigest(),
            created_at=created_at or datetime(2024, 1, n % 28 + 1, 12, 0, tzinfo=UTC),
            location=location,
            taken_at=taken_at,
            tags=photo_tags,
        )

    return factory
