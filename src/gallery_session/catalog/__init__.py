"""
Catalog package.

Provides the image data models and the in-memory catalog store.
"""

from .base import (
    Image,
    PaginationCursor,
    Quality,
    ScreenMode,
    SearchPage,
    UploadFile,
    UploadItem,
    UploadStatus,
)
from .store import CatalogStore

__all__ = [
    "CatalogStore",
    "Image",
    "PaginationCursor",
    "Quality",
    "ScreenMode",
    "SearchPage",
    "UploadFile",
    "UploadItem",
    "UploadStatus",
]
