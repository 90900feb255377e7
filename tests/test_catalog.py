"""
Tests for the catalog package.

Tests the data models and the CatalogStore.
"""

import pytest
from pydantic import ValidationError

from gallery_session.catalog.base import (
    Image,
    PaginationCursor,
    ScreenMode,
    SearchPage,
    UploadFile,
    UploadItem,
    UploadStatus,
)
from gallery_session.catalog.store import CatalogStore


class TestImage:
    """Test Image model."""

    def test_create_image(self):
        """Test creating an image with all fields."""
        img = Image(id="abc", captured_at="2024-06-01T10:00:00", aspect_ratio=1.5, tags={"beach"})

        assert img.id == "abc"
        assert img.captured_at == "2024-06-01T10:00:00"
        assert img.tags == {"beach"}
        assert img.height_at_unit_width == pytest.approx(1 / 1.5)

    def test_aspect_ratio_must_be_positive(self):
        """Test that a zero aspect ratio is rejected."""
        with pytest.raises(ValidationError):
            Image(id="abc", aspect_ratio=0)

    def test_aspect_ratio_from_dimensions(self):
        """Test aspect ratio derived from width and height."""
        img = Image.model_validate({"id": "abc", "width": 4000, "height": 3000})

        assert img.aspect_ratio == pytest.approx(4 / 3)

    def test_bare_id_from_legacy_listing(self):
        """Test that a bare string becomes a square image."""
        img = Image.model_validate("1700000000-abc")

        assert img.id == "1700000000-abc"
        assert img.aspect_ratio == 1.0
        assert img.tags == set()

    def test_tags_from_list(self):
        """Test that tags given as a JSON list become a set."""
        img = Image.model_validate({"id": "x", "tags": ["a", "b", "a"]})

        assert img.tags == {"a", "b"}


class TestSearchPage:
    """Test SearchPage.resolved_has_more."""

    def test_explicit_flag_wins(self):
        page = SearchPage(images=[], total=1000, has_more=False)

        assert page.resolved_has_more(page=1, limit=40) is False

    def test_derived_from_total(self):
        page = SearchPage(images=[], total=80)

        assert page.resolved_has_more(page=1, limit=40) is True
        assert page.resolved_has_more(page=2, limit=40) is False

    def test_full_page_assumes_more(self, image_factory):
        assert SearchPage(images=image_factory("x", 40)).resolved_has_more(1, 40) is True
        assert SearchPage(images=image_factory("x", 12)).resolved_has_more(1, 40) is False


class TestUploadModels:
    """Test upload models."""

    def test_item_starts_waiting(self):
        item = UploadItem(file=UploadFile(filename="a.jpg", data=b"x"))

        assert item.status == UploadStatus.WAITING
        assert item.filename == "a.jpg"
        assert item.error is None

    def test_from_path(self, tmp_path):
        path = tmp_path / "photo.jpg"
        path.write_bytes(b"\xff\xd8data")

        file = UploadFile.from_path(path)

        assert file.filename == "photo.jpg"
        assert file.data == b"\xff\xd8data"
        assert file.last_modified == int(path.stat().st_mtime * 1000)

    def test_cursor_defaults(self):
        cursor = PaginationCursor()

        assert cursor.page == 1
        assert cursor.has_more is True
        assert cursor.loading is False


class TestCatalogStore:
    """Test CatalogStore."""

    def test_read_preserves_order(self, store):
        assert [img.id for img in store.read()] == ["A", "B", "C", "D", "E"]
        assert len(store) == 5

    def test_append_preserves_arrival_order(self, image_factory):
        store = CatalogStore()
        store.append(image_factory("p1", 3))
        store.append(image_factory("p2", 2))

        assert store.ids() == ["p1-0", "p1-1", "p1-2", "p2-0", "p2-1"]

    def test_append_does_not_deduplicate(self, sample_images):
        store = CatalogStore(sample_images[:1])
        store.append(sample_images[:1])

        assert store.ids() == ["A", "A"]

    def test_replace(self, store, image_factory):
        store.replace(image_factory("n", 2))

        assert store.ids() == ["n-0", "n-1"]

    def test_get_and_index_of(self, store):
        assert store.get("C").id == "C"
        assert store.get("missing") is None
        assert store.index_of("D") == 3
        assert store.index_of("missing") is None

    def test_patch_replaces_in_place(self, store):
        updated = store.get("B").model_copy(update={"tags": {"beach", "dog"}})

        replaced = store.patch([updated, Image(id="unknown")])

        assert replaced == 1
        assert store.ids() == ["A", "B", "C", "D", "E"]
        assert store.get("B").tags == {"beach", "dog"}

    def test_subscribe_notifies_synchronously(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(len(s)))

        store.replace([])
        store.append([Image(id="x")])
        unsubscribe()
        store.replace([])

        assert seen == [0, 1]

    def test_screen_mode(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(s.screen))

        assert store.screen == ScreenMode.GALLERY
        store.set_screen(ScreenMode.UPLOAD)
        store.set_screen(ScreenMode.UPLOAD)

        assert store.screen == ScreenMode.UPLOAD
        assert seen == [ScreenMode.UPLOAD]
