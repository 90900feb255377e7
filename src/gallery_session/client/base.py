"""Abstract base class for image services and the errors they raise.

Enables swapping the HTTP service for an in-memory fake in tests or a
different backend.
"""

from abc import ABC, abstractmethod

from ..catalog.base import Image, Quality, SearchPage, UploadFile


class GalleryServiceError(Exception):
    """A request to the image service failed.

    Transient: the operation may be retried by re-triggering it.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(GalleryServiceError):
    """The service answered 401; the user must log in again."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message, status_code=401)


class ServiceUnavailableError(GalleryServiceError):
    """The request never produced a response (connection error or timeout)."""


class ImageService(ABC):
    """Abstract interface for the remote image service."""

    @abstractmethod
    async def list_images(self) -> list[Image]:
        """Return the full, unfiltered image listing."""
        pass

    @abstractmethod
    async def search(self, query: str, page: int, limit: int) -> SearchPage:
        """Fetch one page of images matching ``query``.

        Args:
            query: Free-text query; empty matches every image
            page: 1-based page number
            limit: Page size

        Returns:
            The page of results with paging hints
        """
        pass

    @abstractmethod
    async def upload(self, file: UploadFile) -> None:
        """Upload a single file."""
        pass

    @abstractmethod
    async def add_tags(self, image_ids: list[str], tags: list[str]) -> None:
        """Attach every tag to every image."""
        pass

    @abstractmethod
    async def remove_tags(self, image_ids: list[str], tags: list[str]) -> None:
        """Detach every tag from every image."""
        pass

    @abstractmethod
    async def fetch_image(self, image_id: str, quality: Quality) -> bytes:
        """Download image bytes at the given quality tier."""
        pass

    @abstractmethod
    def image_url(self, image_id: str, quality: Quality) -> str:
        """Return the URL that renders ``image_id`` at ``quality``."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
