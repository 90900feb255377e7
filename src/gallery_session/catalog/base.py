"""
Data models for the gallery session.

Provides Pydantic models for images, search pages, the pagination cursor
and upload batch items.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class Quality(str, Enum):
    """Rendering tier passed as the ``quality`` query parameter."""

    SMALL = "small"
    MEDIUM = "medium"
    ORIGINAL = "original"


class ScreenMode(str, Enum):
    """Top-level screen the session is showing."""

    GALLERY = "gallery"
    UPLOAD = "upload"


class UploadStatus(str, Enum):
    """Lifecycle of a single file in an upload batch."""

    WAITING = "waiting"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


class Image(BaseModel):
    """An image record as returned by the image service."""

    id: str = Field(description="Server-assigned stable identifier")
    captured_at: str | None = Field(default=None, description="Capture timestamp")
    aspect_ratio: float = Field(default=1.0, gt=0, description="Width divided by height")
    tags: set[str] = Field(default_factory=set, description="Tags attached to the image")

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data):
        # The legacy listing returns bare identifiers
        if isinstance(data, str):
            return {"id": data}
        if isinstance(data, dict) and data.get("aspect_ratio") is None:
            width, height = data.get("width"), data.get("height")
            data = {k: v for k, v in data.items() if k != "aspect_ratio"}
            if width and height:
                data["aspect_ratio"] = width / height
        return data

    @property
    def height_at_unit_width(self) -> float:
        """Rendered height of the image when drawn one unit wide."""
        return 1 / self.aspect_ratio


class SearchPage(BaseModel):
    """One page of search results."""

    images: list[Image] = Field(default_factory=list)
    total: int | None = Field(default=None, description="Total matches, if reported")
    has_more: bool | None = Field(default=None, description="Explicit more-pages flag")

    def resolved_has_more(self, page: int, limit: int) -> bool:
        """Decide whether another page exists after ``page``.

        Prefers the explicit flag, then the reported total, and finally
        assumes more results whenever the page came back full.
        """
        if self.has_more is not None:
            return self.has_more
        if self.total is not None:
            return page * limit < self.total
        return len(self.images) >= limit


class PaginationCursor(BaseModel):
    """Bookkeeping for the active search.

    ``page`` is the next page to request. A new cursor is created for every
    committed term, so identity comparison detects stale responses.
    """

    term: str = ""
    page: int = 1
    has_more: bool = True
    loading: bool = False


class UploadFile(BaseModel):
    """A local file selected for upload."""

    filename: str
    data: bytes = Field(repr=False)
    last_modified: int = Field(default=0, description="Modification time in epoch milliseconds")

    @classmethod
    def from_path(cls, path: Path | str) -> "UploadFile":
        """Read a file from disk, keeping its name and modification time."""
        path = Path(path)
        return cls(
            filename=path.name,
            data=path.read_bytes(),
            last_modified=int(path.stat().st_mtime * 1000),
        )


class UploadItem(BaseModel):
    """A file in the current upload batch with its status."""

    file: UploadFile
    status: UploadStatus = UploadStatus.WAITING
    error: str | None = Field(default=None, description="Failure reason, if failed")

    @property
    def filename(self) -> str:
        return self.file.filename
