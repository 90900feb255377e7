"""
Bounded-concurrency upload pipeline.

A batch of files is marked ``waiting`` up front, then drained in
submission order by a fixed pool of workers so that at most
``concurrency`` uploads are in flight. Each file moves
waiting -> uploading -> done | failed exactly once and is never retried.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .catalog.base import UploadFile, UploadItem, UploadStatus
from .client.base import GalleryServiceError, ImageService, SessionExpiredError
from .logging import get_logger

log = get_logger("uploads")


def _ignore() -> None:
    return None


class UploadPipeline:
    """Uploads one batch of files through a worker pool."""

    def __init__(
        self,
        service: ImageService,
        concurrency: int = 16,
        on_session_expired: Callable[[], None] = _ignore,
        on_batch_complete: Callable[[], Awaitable[Any]] | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            service: Image service receiving the files
            concurrency: Maximum number of uploads in flight
            on_session_expired: Called once per batch when the service answers 401
            on_batch_complete: Awaited after a fully successful batch is cleared
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.service = service
        self.concurrency = concurrency
        self.on_session_expired = on_session_expired
        self.on_batch_complete = on_batch_complete
        self.items: list[UploadItem] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._expired = False

    @property
    def active(self) -> bool:
        """Whether a batch is visible, which blocks starting another one."""
        return bool(self.items)

    @property
    def uploaded(self) -> int:
        return sum(1 for item in self.items if item.status == UploadStatus.DONE)

    def counts(self) -> Counter:
        """Number of items per status in the current batch."""
        return Counter(item.status for item in self.items)

    def prepare(self, files: Iterable[UploadFile]) -> list[UploadItem]:
        """
        Start a new batch with every file ``waiting``.

        Raises:
            RuntimeError: If a previous batch is still visible
        """
        if self.items:
            raise RuntimeError("An upload batch is already in progress; clear it first")
        self.items = [UploadItem(file=file) for file in files]
        self.peak_in_flight = 0
        log.info("Upload batch of {} files queued", len(self.items))
        return list(self.items)

    async def run(self) -> list[UploadItem]:
        """
        Upload every waiting item of the current batch.

        Returns:
            The batch items with their final statuses
        """
        batch = list(self.items)
        queue: asyncio.Queue[UploadItem] = asyncio.Queue()
        for item in batch:
            if item.status == UploadStatus.WAITING:
                queue.put_nowait(item)

        self._expired = False
        workers = [
            asyncio.create_task(self._worker(queue))
            for _ in range(min(self.concurrency, queue.qsize()))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()

        await self._finish(batch)
        return batch

    async def upload(self, files: Iterable[UploadFile]) -> list[UploadItem]:
        """Prepare a batch from ``files`` and upload it."""
        self.prepare(files)
        return await self.run()

    def clear(self) -> None:
        """Drop the visible batch, e.g. after the user acknowledged failures."""
        if self.in_flight:
            raise RuntimeError("Cannot clear a batch while uploads are in flight")
        self.items = []

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if self._expired:
                # Left waiting; the user has to log in again first
                continue
            await self._upload_one(item)

    async def _upload_one(self, item: UploadItem) -> None:
        item.status = UploadStatus.UPLOADING
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        log.debug("Uploading {} ({} in flight)", item.filename, self.in_flight)
        try:
            await self.service.upload(item.file)
        except SessionExpiredError:
            item.status = UploadStatus.FAILED
            item.error = "Session expired"
            if not self._expired:
                self._expired = True
                log.warning("Session expired while uploading {}", item.filename)
                self.on_session_expired()
        except GalleryServiceError as e:
            item.status = UploadStatus.FAILED
            item.error = str(e)
            log.warning("Upload of {} failed: {}", item.filename, e)
        else:
            item.status = UploadStatus.DONE
            log.debug("Uploaded {}", item.filename)
        finally:
            self.in_flight -= 1

    async def _finish(self, batch: list[UploadItem]) -> None:
        counts = Counter(item.status for item in batch)
        log.info(
            "Upload batch finished: {} done, {} failed, {} not started",
            counts[UploadStatus.DONE],
            counts[UploadStatus.FAILED],
            counts[UploadStatus.WAITING],
        )
        if not batch or counts[UploadStatus.DONE] != len(batch):
            return
        self.items = []
        if self.on_batch_complete is not None:
            await self.on_batch_complete()
