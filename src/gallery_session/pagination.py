"""
Search and pagination.

Debounces query edits, fetches successive result pages from the image
service and appends them to the catalog. Only one page request is in
flight per search, and responses for a superseded search are dropped.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from loguru import logger

from .catalog.base import Image, PaginationCursor
from .catalog.store import CatalogStore
from .client.base import GalleryServiceError, ImageService, SessionExpiredError


def _ignore() -> None:
    return None


def _distinct(images: Iterable[Image], seen: set[str]) -> list[Image]:
    """Keep the first occurrence of each id not already in ``seen``."""
    result = []
    for image in images:
        if image.id in seen:
            continue
        seen.add(image.id)
        result.append(image)
    return result


class Debouncer:
    """Runs a coroutine function once calls stop arriving for ``delay`` seconds.

    Each call cancels the pending one and restarts the timer. Must be used
    from inside a running event loop.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self.task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, func, args)

    def _fire(self, func: Callable[..., Awaitable[Any]], args: tuple) -> None:
        self._handle = None
        self.task = asyncio.get_running_loop().create_task(func(*args))

    def cancel(self) -> None:
        """Drop the pending call, if any. A call that already fired keeps running."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def close(self) -> None:
        self.cancel()
        if self.task is not None and not self.task.done():
            self.task.cancel()


class ProximityTrigger:
    """A "the user is close to the end" signal.

    The host (browser bridge, terminal UI, test) calls :meth:`fire` when the
    loading sentinel becomes visible; the engine only subscribes.
    """

    def __init__(self) -> None:
        self._callbacks: list[Callable[[], Any]] = []

    def subscribe(self, callback: Callable[[], Any]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def fire(self) -> None:
        for callback in list(self._callbacks):
            callback()


class PaginationController:
    """Drives paginated search into a :class:`CatalogStore`."""

    def __init__(
        self,
        store: CatalogStore,
        service: ImageService,
        page_size: int = 40,
        debounce: float = 0.25,
        on_session_expired: Callable[[], None] = _ignore,
    ):
        """
        Initialize the controller.

        Args:
            store: Catalog receiving the fetched pages
            service: Image service to query
            page_size: Images requested per page
            debounce: Quiet interval in seconds before a query edit commits
            on_session_expired: Called when the service answers 401
        """
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.store = store
        self.service = service
        self.page_size = page_size
        self.debouncer = Debouncer(debounce)
        self.on_session_expired = on_session_expired
        # Nothing is loadable until a term is committed
        self.cursor = PaginationCursor(has_more=False)
        self._tasks: set[asyncio.Task] = set()
        self._scheduled: asyncio.Task | None = None

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    @property
    def loading(self) -> bool:
        return self.cursor.loading

    def set_query(self, text: str) -> None:
        """Record a query edit; it commits after the debounce interval."""
        logger.debug("Query edited: '{}'", text[:50])
        self.debouncer.call(self.commit, text)

    async def commit(self, term: str) -> bool:
        """
        Start a new search for ``term``.

        Resets the cursor to page 1, clears the catalog and fetches the
        first page.

        Returns:
            True if the first page was applied
        """
        term = term.strip()
        self.debouncer.cancel()
        self._cancel_scheduled()
        self.cursor = PaginationCursor(term=term)
        self.store.replace([])
        logger.info("Search committed: '{}'", term[:50])
        return await self.advance()

    async def refresh(self) -> bool:
        """Reload the current search from page 1."""
        return await self.commit(self.cursor.term)

    async def advance(self) -> bool:
        """
        Fetch and append the next page of the current search.

        Does nothing while a page is loading or when no more pages exist.
        Failures leave the page number unchanged so the same page is
        requested on the next trigger.

        Returns:
            True if a page was applied to the catalog
        """
        cursor = self.cursor
        if cursor.loading:
            logger.debug("Page {} of '{}' already loading", cursor.page, cursor.term[:50])
            return False
        if not cursor.has_more:
            return False

        page = cursor.page
        cursor.loading = True
        try:
            result = await self.service.search(cursor.term, page, self.page_size)
        except SessionExpiredError:
            logger.warning("Session expired while loading page {} of '{}'", page, cursor.term[:50])
            self.on_session_expired()
            return False
        except GalleryServiceError as e:
            logger.warning("Failed to load page {} of '{}': {}", page, cursor.term[:50], e)
            return False
        finally:
            cursor.loading = False

        if cursor is not self.cursor:
            logger.debug("Discarding stale page {} of '{}'", page, cursor.term[:50])
            return False

        fresh = _distinct(result.images, set(self.store.ids()))
        if len(fresh) < len(result.images):
            logger.debug("Dropped {} duplicate images from page {}", len(result.images) - len(fresh), page)

        self.store.append(fresh)
        cursor.page = page + 1
        cursor.has_more = result.resolved_has_more(page, self.page_size)
        logger.debug(
            "Loaded page {} of '{}': {} images, has_more={}",
            page,
            cursor.term[:50],
            len(fresh),
            cursor.has_more,
        )
        return True

    def request_advance(self) -> asyncio.Task | None:
        """Schedule :meth:`advance` without waiting for it.

        Returns:
            The scheduled task, or None if nothing is loadable right now
        """
        if self.cursor.loading or not self.cursor.has_more:
            return None
        if self._scheduled is not None and not self._scheduled.done():
            return None
        task = asyncio.get_running_loop().create_task(self.advance())
        self._scheduled = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_scheduled(self) -> None:
        if self._scheduled is not None and not self._scheduled.done():
            self._scheduled.cancel()
        self._scheduled = None

    def attach(self, trigger: ProximityTrigger) -> Callable[[], None]:
        """Advance whenever ``trigger`` fires. Returns the unsubscribe callable."""
        return trigger.subscribe(self.request_advance)

    async def load_all(self) -> bool:
        """Replace the catalog with the legacy unpaginated listing."""
        self.debouncer.cancel()
        self._cancel_scheduled()
        cursor = PaginationCursor(has_more=False, loading=True)
        self.cursor = cursor
        self.store.replace([])
        try:
            images = await self.service.list_images()
        except SessionExpiredError:
            logger.warning("Session expired while listing images")
            self.on_session_expired()
            return False
        except GalleryServiceError as e:
            logger.warning("Failed to list images: {}", e)
            return False
        finally:
            cursor.loading = False

        if cursor is not self.cursor:
            return False
        unique = _distinct(images, set())
        self.store.replace(unique)
        logger.info("Loaded {} images from full listing", len(unique))
        return True

    async def close(self) -> None:
        """Cancel the pending debounce and any in-flight page requests."""
        self.debouncer.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
