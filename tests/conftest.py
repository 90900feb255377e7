"""Pytest fixtures and configuration for gallery-session tests.

This module provides shared fixtures: sample images, a mocked image
service, a catalog store and test settings.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gallery_session.catalog.base import Image, Quality, SearchPage, UploadFile
from gallery_session.catalog.store import CatalogStore
from gallery_session.client.base import ImageService
from gallery_session.config import Settings


def make_images(prefix: str, count: int, start: int = 0, aspect_ratio: float = 1.0) -> list[Image]:
    """Build ``count`` images with ids like ``prefix-0``."""
    return [
        Image(id=f"{prefix}-{i}", aspect_ratio=aspect_ratio)
        for i in range(start, start + count)
    ]


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_images() -> list[Image]:
    """Five images A..E with a few tags."""
    return [
        Image(id="A", aspect_ratio=1.5, tags={"beach", "sunset"}),
        Image(id="B", aspect_ratio=0.75, tags={"beach"}),
        Image(id="C", aspect_ratio=1.0, tags={"beach", "family"}),
        Image(id="D", aspect_ratio=2.0, tags=set()),
        Image(id="E", aspect_ratio=0.5, tags={"family"}),
    ]


@pytest.fixture
def image_factory():
    """Expose ``make_images`` to tests."""
    return make_images


@pytest.fixture
def store(sample_images) -> CatalogStore:
    """Catalog preloaded with the sample images."""
    return CatalogStore(sample_images)


@pytest.fixture
def upload_files() -> list[UploadFile]:
    """Twenty small files to upload."""
    return [
        UploadFile(filename=f"photo-{i:02d}.jpg", data=b"\xff\xd8" + bytes([i]), last_modified=1_700_000_000_000 + i)
        for i in range(20)
    ]


# --- Mock Service Fixtures ---


@pytest.fixture
def mock_image_service() -> ImageService:
    """Create a mock image service.

    ``search`` serves pages of 40 distinct images per term, three pages deep.
    """
    service = MagicMock(spec=ImageService)

    async def mock_search(query: str, page: int, limit: int) -> SearchPage:
        """Return a deterministic page for the query."""
        images = make_images(query or "all", limit, start=(page - 1) * limit)
        return SearchPage(images=images, total=limit * 3, has_more=page < 3)

    async def mock_list_images() -> list[Image]:
        """Return a small full listing."""
        return make_images("all", 5)

    async def mock_fetch_image(image_id: str, quality: Quality) -> bytes:
        """Return fake image bytes."""
        return b"bytes"

    def mock_image_url(image_id: str, quality: Quality) -> str:
        """Build a URL the way the HTTP client does."""
        return f"http://test/api/images/{image_id}?quality={Quality(quality).value}"

    service.search = AsyncMock(side_effect=mock_search)
    service.list_images = AsyncMock(side_effect=mock_list_images)
    service.fetch_image = AsyncMock(side_effect=mock_fetch_image)
    service.image_url = MagicMock(side_effect=mock_image_url)
    service.upload = AsyncMock(return_value=None)
    service.add_tags = AsyncMock(return_value=None)
    service.remove_tags = AsyncMock(return_value=None)
    service.close = AsyncMock(return_value=None)

    return service


# --- Settings Fixtures ---


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a short debounce for fast tests."""
    return Settings(
        api_base_url="http://test",
        session_token="test-token",
        search_debounce=0.01,
        page_size=40,
        upload_concurrency=16,
    )
