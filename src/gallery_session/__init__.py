"""
Gallery Session Engine.

Client-side core of a photo gallery: paginated search into an in-memory
catalog, masonry layout, multi-select tag editing, lightbox navigation
with prefetch, and a bounded-concurrency upload pipeline.

Usage:
    # Browse the first pages of a search
    gallery-session search beach --pages 2

    # Upload a folder of photos
    gallery-session upload ~/Pictures/trip/*.jpg

    # Show configuration
    gallery-session info
"""

__version__ = "0.1.0"

from .session import GallerySession

__all__ = [
    "GallerySession",
]
