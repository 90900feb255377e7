"""
Full-screen image navigation.

The lightbox is either closed or open on one image of the visible list.
Moving to an image prefetches its neighbours at the current quality tier,
and moving close to the end of the loaded list asks the pagination
controller for the next page without waiting for it.
"""

import asyncio
from collections.abc import Callable, Sequence

from loguru import logger

from .catalog.base import Image, Quality
from .catalog.store import CatalogStore
from .client.base import GalleryServiceError, ImageService, SessionExpiredError
from .pagination import PaginationController


def _ignore(*args) -> None:
    return None


class Lightbox:
    """State machine for the full-screen viewer."""

    def __init__(
        self,
        service: ImageService,
        visible: Callable[[], Sequence[Image]],
        store: CatalogStore | None = None,
        pagination: PaginationController | None = None,
        prefetch_threshold: int = 10,
        quality: Quality = Quality.MEDIUM,
        scroll_into_view: Callable[[str], None] = _ignore,
        on_session_expired: Callable[[], None] = _ignore,
    ):
        """
        Initialize the lightbox in the closed state.

        Args:
            service: Image service used for URLs and prefetching
            visible: Returns the currently visible image list
            store: Catalog to follow; the lightbox closes when its image leaves the visible list
            pagination: Controller asked for more images near the end of the catalog
            prefetch_threshold: How close to the end of the loaded catalog a page advance is requested
            quality: Initial quality tier
            scroll_into_view: Called with the image id when the lightbox closes
            on_session_expired: Called when a prefetch answers 401
        """
        self.service = service
        self.visible = visible
        self.pagination = pagination
        self.prefetch_threshold = prefetch_threshold
        self.quality = Quality(quality)
        self.scroll_into_view = scroll_into_view
        self.on_session_expired = on_session_expired
        self.current: str | None = None
        self._prefetches: set[asyncio.Task] = set()
        self._unsubscribe = store.subscribe(self._follow) if store is not None else _ignore

    @property
    def is_open(self) -> bool:
        return self.current is not None

    def _ids(self) -> list[str]:
        return [image.id for image in self.visible()]

    def open(self, image_id: str) -> None:
        """Open the lightbox on ``image_id``, which must be visible."""
        ids = self._ids()
        if image_id not in ids:
            raise ValueError(f"Image {image_id} is not visible")
        logger.debug("Lightbox opened on {}", image_id)
        self._enter(image_id, ids)

    def next(self) -> bool:
        """Move to the following image. Returns whether the cursor moved."""
        return self._step(1)

    def previous(self) -> bool:
        """Move to the preceding image. Returns whether the cursor moved."""
        return self._step(-1)

    def _step(self, offset: int) -> bool:
        if self.current is None:
            return False
        ids = self._ids()
        if self.current not in ids:
            # Filtered out from under us
            logger.debug("Lightbox image {} no longer visible, closing", self.current)
            self.close()
            return False

        index = ids.index(self.current)
        target = index + offset
        if target < 0 or target >= len(ids):
            logger.debug("Lightbox at boundary ({}), staying on {}", index, self.current)
            if offset > 0:
                self._maybe_request_page(at_end=True)
            return False

        self._enter(ids[target], ids)
        return True

    def close(self) -> str | None:
        """Close the lightbox.

        Returns:
            The id that was shown, or None if already closed
        """
        image_id = self.current
        if image_id is None:
            return None
        self.current = None
        logger.debug("Lightbox closed on {}", image_id)
        self.scroll_into_view(image_id)
        return image_id

    def toggle_quality(self) -> Quality:
        """Switch between medium and original. Only possible while open."""
        if self.current is None:
            return self.quality
        self.quality = Quality.MEDIUM if self.quality == Quality.ORIGINAL else Quality.ORIGINAL
        logger.debug("Lightbox quality set to {}", self.quality.value)
        ids = self._ids()
        if self.current in ids:
            self._prefetch_neighbours(ids.index(self.current), ids)
        return self.quality

    def image_url(self) -> str | None:
        """URL of the current image at the current quality."""
        if self.current is None:
            return None
        return self.service.image_url(self.current, self.quality)

    def _enter(self, image_id: str, ids: list[str]) -> None:
        self.current = image_id
        index = ids.index(image_id)
        self._prefetch_neighbours(index, ids)
        self._maybe_request_page()

    def _maybe_request_page(self, at_end: bool = False) -> None:
        if self.pagination is None or not self.pagination.has_more:
            return
        catalog = self.pagination.store
        loaded = len(catalog)
        index = catalog.index_of(self.current)
        near_end = index is not None and index >= loaded - self.prefetch_threshold
        if at_end or near_end:
            if self.pagination.request_advance() is not None:
                logger.debug("Lightbox near end of {} loaded images, requested next page", loaded)

    def _follow(self, store: CatalogStore) -> None:
        if self.current is None:
            return
        if self.current not in self._ids():
            # Image is gone; skip scroll_into_view
            logger.debug("Lightbox image {} left the catalog, closing", self.current)
            self.current = None

    def detach(self) -> None:
        """Stop following catalog changes."""
        self._unsubscribe()

    def _prefetch_neighbours(self, index: int, ids: list[str]) -> None:
        neighbours = [ids[i] for i in (index - 1, index + 1) if 0 <= i < len(ids)]
        if not neighbours:
            return
        loop = asyncio.get_running_loop()
        for image_id in neighbours:
            task = loop.create_task(self._prefetch(image_id, self.quality))
            self._prefetches.add(task)
            task.add_done_callback(self._prefetches.discard)

    async def _prefetch(self, image_id: str, quality: Quality) -> None:
        try:
            await self.service.fetch_image(image_id, quality)
            logger.debug("Prefetched {} at {}", image_id, quality.value)
        except SessionExpiredError:
            self.on_session_expired()
        except GalleryServiceError as e:
            logger.debug("Prefetch of {} failed: {}", image_id, e)

    async def close_tasks(self) -> None:
        """Cancel outstanding prefetches."""
        tasks = list(self._prefetches)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
