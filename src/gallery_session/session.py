"""
Gallery session.

Builds the catalog, pagination, selection, lightbox and upload components
around one image service and wires them together. A session lives from
login until logout or navigation away; use it as an async context manager
so background tasks and the HTTP client are released.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from loguru import logger

from .catalog.base import Image, Quality, ScreenMode, UploadFile, UploadItem
from .catalog.store import CatalogStore
from .client import ImageService, create_image_service
from .commands import Command, CommandRouter
from .config import Settings, settings as default_settings
from .layout import masonry_layout
from .lightbox import Lightbox
from .pagination import PaginationController, ProximityTrigger
from .selection import SelectionEngine
from .upload import UploadPipeline


def _ignore(*args) -> None:
    return None


class GallerySession:
    """One user's browsing session."""

    def __init__(
        self,
        service: ImageService,
        settings: Settings | None = None,
        on_session_expired: Callable[[], None] = _ignore,
        scroll_into_view: Callable[[str], None] = _ignore,
    ):
        """
        Create the session components.

        Args:
            service: Image service shared by every component
            settings: Tunables; defaults to the global settings
            on_session_expired: Called whenever the service answers 401, the
                host should send the user to the login screen
            scroll_into_view: Called with an image id when the lightbox closes
        """
        self.settings = settings or default_settings
        self.service = service
        self.on_session_expired = on_session_expired
        self.expired = False

        self.tag_mode = False
        self.search_open = False
        self.tag_filter: frozenset[str] = frozenset()

        self.store = CatalogStore()
        self.pagination = PaginationController(
            self.store,
            service,
            page_size=self.settings.page_size,
            debounce=self.settings.search_debounce,
            on_session_expired=self._session_expired,
        )
        self.selection = SelectionEngine(
            self.store,
            service,
            visible=self.visible_images,
            on_session_expired=self._session_expired,
        )
        self.lightbox = Lightbox(
            service,
            visible=self.visible_images,
            store=self.store,
            pagination=self.pagination,
            prefetch_threshold=self.settings.prefetch_threshold,
            quality=Quality(self.settings.default_quality),
            scroll_into_view=scroll_into_view,
            on_session_expired=self._session_expired,
        )
        self.uploads = UploadPipeline(
            service,
            concurrency=self.settings.upload_concurrency,
            on_session_expired=self._session_expired,
            on_batch_complete=self.pagination.refresh,
        )
        self.sentinel = ProximityTrigger()
        self._detach_sentinel = self.pagination.attach(self.sentinel)

        self.router = CommandRouter()
        self.router.bind(Command.NEXT_IMAGE, self.lightbox.next)
        self.router.bind(Command.PREVIOUS_IMAGE, self.lightbox.previous)
        self.router.bind(Command.CLOSE, self.escape)
        self.router.bind(Command.TOGGLE_TAG_MODE, self.toggle_tag_mode)
        self.router.bind(Command.CLEAR_SELECTION, self.selection.clear)
        self.router.bind(Command.TOGGLE_SEARCH, self.toggle_search)
        self.router.bind(Command.TOGGLE_QUALITY, self.lightbox.toggle_quality)
        self.router.bind(Command.OPEN_UPLOADER, self.open_uploader)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> GallerySession:
        """Create a session talking HTTP to ``settings.api_base_url``."""
        settings = settings or default_settings
        service = create_image_service(
            base_url=settings.api_base_url,
            token=settings.session_token,
            timeout=settings.request_timeout,
        )
        return cls(service, settings=settings, **kwargs)

    async def __aenter__(self) -> GallerySession:
        logger.info("Gallery session started")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear down background work and release the service."""
        self._detach_sentinel()
        self.selection.detach()
        self.lightbox.detach()
        await self.pagination.close()
        await self.lightbox.close_tasks()
        await self.service.close()
        logger.info("Gallery session closed")

    # --- Browsing ---

    async def start(self, query: str = "") -> bool:
        """Load the first page for ``query`` immediately."""
        return await self.pagination.commit(query)

    def search(self, text: str) -> None:
        """Feed a query edit; it commits once typing pauses."""
        self.pagination.set_query(text)

    def visible_images(self) -> list[Image]:
        """Catalog images passing the tag filter, in catalog order."""
        images = self.store.read()
        if not self.tag_filter:
            return list(images)
        return [image for image in images if self.tag_filter <= image.tags]

    def set_tag_filter(self, tags: Iterable[str]) -> None:
        """Show only images carrying every tag in ``tags``."""
        self.tag_filter = frozenset(tag.strip() for tag in tags if tag.strip())
        if self.lightbox.current is not None:
            if self.lightbox.current not in {image.id for image in self.visible_images()}:
                self.lightbox.close()

    def layout(self, column_count: int | None = None) -> list[list[Image]]:
        """Masonry columns for the visible images."""
        return masonry_layout(self.visible_images(), column_count or self.settings.column_count)

    def click_image(self, image_id: str, extend: bool = False) -> None:
        """Select in tag mode, otherwise open the lightbox."""
        if self.tag_mode:
            self.selection.click(image_id, extend=extend)
        else:
            self.lightbox.open(image_id)

    # --- Modes ---

    def toggle_tag_mode(self) -> bool:
        self.tag_mode = not self.tag_mode
        if self.tag_mode:
            self.lightbox.close()
        else:
            self.selection.clear()
        logger.debug("Tag mode {}", "on" if self.tag_mode else "off")
        return self.tag_mode

    def toggle_search(self) -> bool:
        self.search_open = not self.search_open
        return self.search_open

    def open_uploader(self) -> None:
        self.lightbox.close()
        if self.tag_mode:
            self.toggle_tag_mode()
        self.store.set_screen(ScreenMode.UPLOAD)

    def escape(self) -> None:
        """Back out of the innermost open state."""
        if self.lightbox.is_open:
            self.lightbox.close()
        elif self.store.screen == ScreenMode.UPLOAD:
            # Leaving is only allowed once the batch has cleared
            if not self.uploads.active:
                self.store.set_screen(ScreenMode.GALLERY)
        elif self.search_open:
            self.search_open = False
        elif self.tag_mode:
            self.toggle_tag_mode()

    # --- Uploads ---

    async def upload(self, files: Iterable[UploadFile]) -> list[UploadItem]:
        """Upload a batch; a fully successful batch reloads the catalog."""
        return await self.uploads.upload(files)

    def _session_expired(self) -> None:
        self.expired = True
        logger.warning("Session expired, login required")
        self.on_session_expired()
