"""Capture Controller component for orchestrating the capture pipeline."""

import asyncio
import inspect
import logging
import time
import uuid
from typing import Any, Callable, Optional

from .classifier import classify
from .enricher import LinkEnricher
from .errors import Skip
from .models import ClipboardItem, ImageCapture, ItemType, TextCapture
from .store import HistoryStore

logger = logging.getLogger(__name__)

Capture = TextCapture | ImageCapture
ItemCallback = Callable[[ClipboardItem], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


class CaptureController:
    """Run clipboard captures through classify, enrich, dedup and insert.

    Captures submitted with ``submit`` are processed one at a time by a
    single worker task, so the dedup check and the insert of one capture
    never interleave with another capture.
    """

    MAX_QUEUE_SIZE: int = 100

    def __init__(
        self,
        store: HistoryStore,
        enricher: LinkEnricher,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize capture controller.

        Args:
            store: History store to check and insert into.
            enricher: Link enricher used for link captures.
            clock: Returns the current time in ms since epoch.
            id_factory: Returns a fresh unique item id.
        """
        self._store = store
        self._enricher = enricher
        self._clock = clock
        self._id_factory = id_factory
        self._subscribers: list[ItemCallback] = []
        self._queue: asyncio.Queue[Capture] = asyncio.Queue(maxsize=self.MAX_QUEUE_SIZE)
        self._worker: Optional[asyncio.Task] = None
        self._last_timestamp = 0

    def subscribe(self, callback: ItemCallback) -> Callable[[], None]:
        """Register a callback for newly inserted items.

        Args:
            callback: Called (or awaited, if it returns an awaitable) with
                each inserted item.

        Returns:
            Function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def next_timestamp(self) -> int:
        """Current time in ms, strictly greater than any previously issued."""
        timestamp = max(self._clock(), self._last_timestamp + 1)
        self._last_timestamp = timestamp
        return timestamp

    async def process(self, capture: Capture) -> Optional[ClipboardItem]:
        """Run one capture through the pipeline.

        Pipeline stages:
        1. Classify - decide type and canonical content
        2. Enrich - fetch a preview for links
        3. Dedup - skip content that is already stored
        4. Insert - assign id and timestamp, persist
        5. Notify - tell subscribers about the new item

        Args:
            capture: Raw text or image capture.

        Returns:
            The inserted item, or None if the capture was skipped or a duplicate.
        """
        try:
            classification = classify(capture)
        except Skip as e:
            logger.debug(f"Skipping capture: {e}")
            return None

        metadata = None
        if classification.type is ItemType.LINK:
            metadata = await self._enricher.enrich(classification.content.strip())

        existing = await self._store.find_by_content(classification.content)
        if existing is not None:
            logger.debug(f"Duplicate capture of item {existing.id}, not stored")
            return None

        item = ClipboardItem(
            id=self._id_factory(),
            type=classification.type,
            content=classification.content,
            timestamp=self.next_timestamp(),
            pinned=False,
            metadata=metadata,
        )
        item = await self._store.insert(item)
        logger.info(f"Stored {item.type.value} item {item.id}")

        await self._notify(item)
        return item

    async def handle(self, capture: Capture) -> Optional[ClipboardItem]:
        """Process a capture, logging any failure instead of raising."""
        try:
            return await self.process(capture)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Capture pipeline failed: {e}")
            return None

    def submit(self, capture: Capture) -> None:
        """Queue a capture for the worker. Drops the oldest if the queue is full."""
        if self._queue.full():
            self._queue.get_nowait()
            self._queue.task_done()
            logger.warning("Capture queue full, dropping oldest capture")
        self._queue.put_nowait(capture)

    async def start(self) -> None:
        """Start the pipeline worker task."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="slate-capture-worker")

    async def stop(self) -> None:
        """Stop the worker task. Queued captures that were not started are dropped."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def join(self) -> None:
        """Wait until every queued capture has been handled."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def _run(self) -> None:
        while True:
            capture = await self._queue.get()
            try:
                await self.handle(capture)
            finally:
                self._queue.task_done()

    async def _notify(self, item: ClipboardItem) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(item)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"New item subscriber failed: {e}")
