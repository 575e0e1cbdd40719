"""Clipboard Service wiring the capture pipeline and command surface together."""

import asyncio
import logging
from typing import Optional

from .config import Config
from .controller import CaptureController
from .enricher import LinkEnricher, MetadataFetcher
from .gateway import CommandGateway
from .store import HistoryStore, SQLiteHistoryStore
from .watcher import ClipboardSource, ClipboardWatcher, SystemClipboard

logger = logging.getLogger(__name__)


class ClipboardService:
    """Own the store, pipeline, watcher and gateway for one event loop."""

    def __init__(
        self,
        config: Config,
        store: Optional[HistoryStore] = None,
        clipboard: Optional[ClipboardSource] = None,
        fetcher: Optional[MetadataFetcher] = None,
    ) -> None:
        """Initialize clipboard service.

        Args:
            config: Application configuration.
            store: History store. Defaults to SQLite at ``config.db_path``.
            clipboard: Clipboard capability. Defaults to the system clipboard.
            fetcher: Link metadata fetch capability. Defaults to urllib.
        """
        self._config = config

        # Initialize components
        self.store = store or SQLiteHistoryStore(config.db_path)
        self.clipboard = clipboard or SystemClipboard(capture_images=config.capture_images)
        self.enricher = LinkEnricher(fetcher, timeout_ms=config.preview_timeout_ms)
        self.controller = CaptureController(self.store, self.enricher)
        self.gateway = CommandGateway(self.store, self.enricher, self.clipboard)
        self.watcher = ClipboardWatcher(
            self.clipboard,
            self.controller.submit,
            poll_interval=config.poll_interval,
        )

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped = asyncio.Event()

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """Event loop the service is running on, once started."""
        return self._loop

    async def start(self) -> None:
        """Start the capture worker and clipboard watcher."""
        logger.info("Starting Slate clipboard service...")
        self._loop = asyncio.get_running_loop()
        self._stopped.clear()
        await self.controller.start()
        await self.watcher.start()

    async def stop(self) -> None:
        """Stop watching, compact the store and close it."""
        logger.info("Stopping Slate clipboard service...")
        await self.watcher.stop()
        await self.controller.stop()
        await self.store.compact()
        await self.store.close()
        self._stopped.set()
        logger.info("Service stopped")

    def request_stop(self) -> None:
        """Ask a running ``serve_forever`` to return. Safe from signal handlers."""
        self._stopped.set()

    async def serve_forever(self) -> None:
        """Run until ``request_stop`` is called, then shut down."""
        await self.start()
        try:
            await self._stopped.wait()
        finally:
            await self.stop()
