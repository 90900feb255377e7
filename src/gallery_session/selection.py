"""
Multi-select and bulk tag editing.

Clicks toggle single images; shift-clicks extend the selection over the
contiguous range between the anchor and the clicked image in the visible
list. Tag edits go to the server for the whole selection in one request
and are applied to the catalog only once the server confirms them.
"""

from collections.abc import Callable, Iterable, Sequence

from loguru import logger

from .catalog.base import Image
from .catalog.store import CatalogStore
from .client.base import GalleryServiceError, ImageService, SessionExpiredError


def _ignore() -> None:
    return None


def _clean_tags(tags: Iterable[str]) -> list[str]:
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            raise ValueError("Tags must not be empty")
        if tag not in cleaned:
            cleaned.append(tag)
    if not cleaned:
        raise ValueError("At least one tag is required")
    return cleaned


class SelectionEngine:
    """Tracks selected image ids and applies tag edits to them."""

    def __init__(
        self,
        store: CatalogStore,
        service: ImageService,
        visible: Callable[[], Sequence[Image]] | None = None,
        on_session_expired: Callable[[], None] = _ignore,
    ):
        """
        Initialize the engine.

        Args:
            store: Catalog holding the images
            service: Image service receiving tag edits
            visible: Returns the currently visible image list; defaults to the whole catalog
            on_session_expired: Called when the service answers 401
        """
        self.store = store
        self.service = service
        self.visible = visible or store.read
        self.on_session_expired = on_session_expired
        self._selected: set[str] = set()
        self.last_selected: str | None = None
        self._unsubscribe = store.subscribe(self._prune)

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, image_id: str) -> bool:
        return image_id in self._selected

    def click(self, image_id: str, extend: bool = False) -> frozenset[str]:
        """
        Apply a click on ``image_id``.

        Without ``extend`` the id is toggled. With ``extend`` every id between
        the anchor and ``image_id`` in the visible list is added; without an
        anchor this falls back to a toggle. Either way the clicked id becomes
        the new anchor.

        Returns:
            The selection after the click
        """
        ids = [image.id for image in self.visible()]
        if image_id not in ids:
            raise ValueError(f"Image {image_id} is not visible")

        anchor = self.last_selected
        if extend and anchor is not None and anchor in ids:
            start, end = sorted((ids.index(anchor), ids.index(image_id)))
            self._selected.update(ids[start : end + 1])
            logger.debug("Extended selection {}..{} ({} selected)", anchor, image_id, len(self._selected))
        elif image_id in self._selected:
            self._selected.discard(image_id)
            logger.debug("Deselected {}", image_id)
        else:
            self._selected.add(image_id)
            logger.debug("Selected {}", image_id)

        self.last_selected = image_id
        return self.selected

    def select_all(self) -> frozenset[str]:
        self._selected = {image.id for image in self.visible()}
        return self.selected

    def clear(self) -> None:
        if self._selected:
            logger.debug("Cleared selection of {} images", len(self._selected))
        self._selected.clear()
        self.last_selected = None

    def selected_images(self) -> list[Image]:
        """Selected images in catalog order."""
        return [image for image in self.store.read() if image.id in self._selected]

    def union_tags(self) -> set[str]:
        """Tags present on at least one selected image."""
        tags: set[str] = set()
        for image in self.selected_images():
            tags |= image.tags
        return tags

    def intersection_tags(self) -> set[str]:
        """Tags present on every selected image."""
        images = self.selected_images()
        if not images:
            return set()
        tags = set(images[0].tags)
        for image in images[1:]:
            tags &= image.tags
        return tags

    async def add_tag(self, tag: str) -> bool:
        return await self.add_tags([tag])

    async def remove_tag(self, tag: str) -> bool:
        return await self.remove_tags([tag])

    async def add_tags(self, tags: Iterable[str]) -> bool:
        """
        Attach tags to every selected image.

        Returns:
            True if the server confirmed the change and the catalog was patched
        """
        return await self._edit(_clean_tags(tags), add=True)

    async def remove_tags(self, tags: Iterable[str]) -> bool:
        """Detach tags from every selected image."""
        return await self._edit(_clean_tags(tags), add=False)

    async def _edit(self, tags: list[str], add: bool) -> bool:
        image_ids = [image.id for image in self.selected_images()]
        if not image_ids:
            logger.debug("Tag edit ignored, nothing selected")
            return False

        action = "add" if add else "remove"
        logger.info("Tag {}: {} on {} images", action, tags, len(image_ids))
        try:
            if add:
                await self.service.add_tags(image_ids, tags)
            else:
                await self.service.remove_tags(image_ids, tags)
        except SessionExpiredError:
            logger.warning("Session expired during tag {}", action)
            self.on_session_expired()
            return False
        except GalleryServiceError as e:
            logger.warning("Tag {} failed: {}", action, e)
            return False

        # Re-read after the request so edits landing meanwhile are kept
        changed = set(tags)
        patched = []
        for image_id in image_ids:
            image = self.store.get(image_id)
            if image is None:
                continue
            new_tags = image.tags | changed if add else image.tags - changed
            patched.append(image.model_copy(update={"tags": new_tags}))
        self.store.patch(patched)
        return True

    def _prune(self, store: CatalogStore) -> None:
        present = set(store.ids())
        stale = self._selected - present
        if stale:
            self._selected -= stale
            logger.debug("Dropped {} stale ids from selection", len(stale))
        if self.last_selected is not None and self.last_selected not in present:
            self.last_selected = None

    def detach(self) -> None:
        """Stop following catalog changes."""
        self._unsubscribe()
