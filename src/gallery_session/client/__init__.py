"""Image service client package.

Provides a factory function to create the configured image service.
"""

from .base import GalleryServiceError, ImageService, ServiceUnavailableError, SessionExpiredError
from .http import HttpImageService


def create_image_service(
    service_type: str = "http",
    base_url: str = "http://localhost:3000",
    token: str = "",
    timeout: float = 30.0,
) -> ImageService:
    """Create an image service instance.

    Args:
        service_type: Type of service (only "http" for now)
        base_url: Root URL of the image service
        token: Session token cookie value
        timeout: Request timeout in seconds

    Returns:
        Configured ImageService instance

    Raises:
        ValueError: If service_type is not recognized

    Example:
        >>> service = create_image_service(base_url="http://localhost:3000", token="abc")
        >>> page = await service.search("beach", page=1, limit=40)

    """
    if service_type == "http":
        return HttpImageService(base_url=base_url, token=token, timeout=timeout)
    else:
        raise ValueError(f"Unknown image service: {service_type}")


__all__ = [
    "GalleryServiceError",
    "HttpImageService",
    "ImageService",
    "ServiceUnavailableError",
    "SessionExpiredError",
    "create_image_service",
]
