"""
Tests for the selection and tag engine.
"""

from unittest.mock import MagicMock

import pytest

from gallery_session.catalog.base import Image
from gallery_session.client.base import GalleryServiceError, SessionExpiredError
from gallery_session.selection import SelectionEngine


@pytest.fixture
def engine(store, mock_image_service) -> SelectionEngine:
    """Selection engine over the A..E sample catalog."""
    return SelectionEngine(store, mock_image_service)


class TestClick:
    """Test click and shift-click behavior."""

    def test_click_toggles(self, engine):
        engine.click("B")
        assert engine.selected == {"B"}
        assert engine.last_selected == "B"

        engine.click("B")
        assert engine.selected == frozenset()
        assert engine.last_selected == "B"

    def test_shift_click_forward_range(self, engine):
        engine.click("B")
        engine.click("E", extend=True)

        assert engine.selected == {"B", "C", "D", "E"}
        assert engine.last_selected == "E"

    def test_shift_click_backward_unions(self, engine):
        """A later shift-click extends from the new anchor and keeps the rest."""
        engine.click("B")
        engine.click("E", extend=True)
        engine.click("A", extend=True)

        assert engine.selected == {"A", "B", "C", "D", "E"}

    def test_shift_click_range_is_order_independent(self, engine):
        engine.click("D")
        engine.click("B", extend=True)

        assert engine.selected == {"B", "C", "D"}

    def test_shift_click_without_anchor_toggles(self, engine):
        engine.click("C", extend=True)

        assert engine.selected == {"C"}
        assert engine.last_selected == "C"

    def test_range_uses_visible_list(self, store, mock_image_service):
        """Only images currently visible fall inside the range."""
        visible = [img for img in store.read() if img.id != "C"]
        engine = SelectionEngine(store, mock_image_service, visible=lambda: visible)

        engine.click("B")
        engine.click("D", extend=True)

        assert engine.selected == {"B", "D"}

    def test_click_invisible_image_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.click("Z")

    def test_clear(self, engine):
        engine.click("A")
        engine.click("C", extend=True)

        engine.clear()

        assert engine.selected == frozenset()
        assert engine.last_selected is None

    def test_select_all(self, engine):
        assert engine.select_all() == {"A", "B", "C", "D", "E"}

    def test_stale_ids_pruned_on_catalog_change(self, engine, store):
        engine.click("A")
        engine.click("B")

        store.replace([img for img in store.read() if img.id != "B"])

        assert engine.selected == {"A"}
        assert engine.last_selected is None


class TestTagQueries:
    """Test union and intersection of tags."""

    def test_union_and_intersection(self, engine):
        engine.click("A")
        engine.click("C", extend=True)

        assert engine.union_tags() == {"beach", "sunset", "family"}
        assert engine.intersection_tags() == {"beach"}

    def test_empty_selection(self, engine):
        assert engine.union_tags() == set()
        assert engine.intersection_tags() == set()

    def test_image_without_tags_empties_intersection(self, engine):
        engine.click("C")
        engine.click("D", extend=True)

        assert engine.intersection_tags() == set()
        assert engine.union_tags() == {"beach", "family"}


class TestTagEdits:
    """Test add_tag and remove_tag round-trips."""

    @pytest.mark.asyncio
    async def test_add_tag_patches_after_confirmation(self, engine, store, mock_image_service):
        engine.click("B")
        engine.click("D", extend=True)

        assert await engine.add_tag("  holiday ") is True

        mock_image_service.add_tags.assert_awaited_once_with(["B", "C", "D"], ["holiday"])
        assert store.get("B").tags == {"beach", "holiday"}
        assert store.get("D").tags == {"holiday"}
        assert store.get("A").tags == {"beach", "sunset"}
        assert store.ids() == ["A", "B", "C", "D", "E"]

    @pytest.mark.asyncio
    async def test_remove_tag(self, engine, store, mock_image_service):
        engine.click("A")
        engine.click("C", extend=True)

        assert await engine.remove_tag("beach") is True

        mock_image_service.remove_tags.assert_awaited_once_with(["A", "B", "C"], ["beach"])
        assert store.get("A").tags == {"sunset"}
        assert store.get("B").tags == set()
        assert engine.intersection_tags() == set()

    @pytest.mark.asyncio
    async def test_failed_edit_leaves_catalog(self, engine, store, mock_image_service):
        mock_image_service.add_tags.side_effect = GalleryServiceError("boom", status_code=500)
        engine.click("B")

        assert await engine.add_tag("holiday") is False
        assert store.get("B").tags == {"beach"}
        assert engine.selected == {"B"}

    @pytest.mark.asyncio
    async def test_session_expired_edit(self, store, mock_image_service):
        expired = MagicMock()
        mock_image_service.add_tags.side_effect = SessionExpiredError()
        engine = SelectionEngine(store, mock_image_service, on_session_expired=expired)
        engine.click("B")

        assert await engine.add_tag("holiday") is False
        expired.assert_called_once_with()
        assert store.get("B").tags == {"beach"}

    @pytest.mark.asyncio
    async def test_nothing_selected(self, engine, mock_image_service):
        assert await engine.add_tag("holiday") is False
        mock_image_service.add_tags.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_tag_rejected_before_request(self, engine, mock_image_service):
        engine.click("B")

        with pytest.raises(ValueError):
            await engine.add_tag("   ")
        mock_image_service.add_tags.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_multiple_tags(self, engine, store, mock_image_service):
        engine.click("E")

        await engine.add_tags(["kids", "park", "kids"])

        mock_image_service.add_tags.assert_awaited_once_with(["E"], ["kids", "park"])
        assert store.get("E").tags == {"family", "kids", "park"}

    @pytest.mark.asyncio
    async def test_image_removed_during_request_is_skipped(self, store, mock_image_service):
        engine = SelectionEngine(store, mock_image_service)
        engine.click("A")
        engine.click("B")

        async def drop_b(image_ids, tags):
            store.replace([img for img in store.read() if img.id != "B"])

        mock_image_service.add_tags.side_effect = drop_b

        assert await engine.add_tag("x") is True
        assert store.get("A").tags == {"beach", "sunset", "x"}
        assert store.get("B") is None
        assert isinstance(store.get("A"), Image)
