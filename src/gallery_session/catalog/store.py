"""
In-memory image catalog.

Holds the ordered images of the current search session and the active
screen. Listeners are notified synchronously after every mutation.
"""

from collections.abc import Callable, Iterable

from loguru import logger

from .base import Image, ScreenMode

Listener = Callable[["CatalogStore"], None]


class CatalogStore:
    """Ordered collection of known images plus the current screen mode.

    The store never deduplicates; callers appending pages are responsible
    for handing it distinct images.
    """

    def __init__(self, images: Iterable[Image] = (), screen: ScreenMode = ScreenMode.GALLERY):
        self._images: tuple[Image, ...] = tuple(images)
        self._screen = screen
        self._listeners: list[Listener] = []

    def read(self) -> tuple[Image, ...]:
        """Return the images in server order."""
        return self._images

    def __len__(self) -> int:
        return len(self._images)

    def ids(self) -> list[str]:
        """Return image ids in catalog order."""
        return [image.id for image in self._images]

    def get(self, image_id: str) -> Image | None:
        for image in self._images:
            if image.id == image_id:
                return image
        return None

    def index_of(self, image_id: str) -> int | None:
        for i, image in enumerate(self._images):
            if image.id == image_id:
                return i
        return None

    def replace(self, images: Iterable[Image]) -> None:
        """Replace the whole catalog."""
        self._images = tuple(images)
        logger.debug("Catalog replaced: {} images", len(self._images))
        self._notify()

    def append(self, images: Iterable[Image]) -> None:
        """Append images after the current ones, preserving arrival order."""
        added = tuple(images)
        self._images = self._images + added
        logger.debug("Catalog appended {} images (total {})", len(added), len(self._images))
        self._notify()

    def patch(self, images: Iterable[Image]) -> int:
        """Swap in updated copies of existing images, matched by id.

        Images whose id is not in the catalog are ignored.

        Returns:
            Number of catalog entries replaced.

        """
        updates = {image.id: image for image in images}
        replaced = 0
        patched = []
        for image in self._images:
            if image.id in updates:
                patched.append(updates[image.id])
                replaced += 1
            else:
                patched.append(image)
        self._images = tuple(patched)
        logger.debug("Catalog patched {} images", replaced)
        self._notify()
        return replaced

    @property
    def screen(self) -> ScreenMode:
        return self._screen

    def set_screen(self, screen: ScreenMode) -> None:
        if screen != self._screen:
            logger.debug("Screen changed: {} -> {}", self._screen.value, screen.value)
            self._screen = screen
            self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that removes the listener again.

        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
