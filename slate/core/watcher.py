"""Clipboard Watcher component for detecting clipboard changes."""

import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import pyperclip
from PIL import Image, ImageGrab

from .models import ImageCapture, TextCapture

logger = logging.getLogger(__name__)

Capture = TextCapture | ImageCapture


class ClipboardSource(ABC):
    """OS clipboard capability: change detection plus text write-back."""

    @abstractmethod
    def poll(self) -> Optional[Capture]:
        """Return a capture if the clipboard changed since the last poll."""

    @abstractmethod
    def write_text(self, text: str) -> None:
        """Place text on the clipboard."""

    def prime(self) -> None:
        """Record the current clipboard state without reporting it."""


class SystemClipboard(ClipboardSource):
    """Read the system clipboard with pyperclip and Pillow's ImageGrab."""

    def __init__(self, capture_images: bool = True) -> None:
        """Initialize system clipboard source.

        Args:
            capture_images: Whether to report image changes.
        """
        self._capture_images = capture_images
        self._last_text: Optional[str] = None
        self._last_image_hash: Optional[str] = None

    def prime(self) -> None:
        self._last_text = self._read_text()
        image = self._read_image() if self._capture_images else None
        self._last_image_hash = self._image_hash(image) if image is not None else None

    def poll(self) -> Optional[Capture]:
        text = self._read_text()
        if text is not None and text != self._last_text:
            self._last_text = text
            return TextCapture(text)

        if not self._capture_images:
            return None

        image = self._read_image()
        if image is None:
            return None
        image_hash = self._image_hash(image)
        if image_hash != self._last_image_hash:
            self._last_image_hash = image_hash
            return ImageCapture(image)
        return None

    def write_text(self, text: str) -> None:
        pyperclip.copy(text)
        # Do not report our own write back as a fresh change
        self._last_text = text

    def _read_text(self) -> Optional[str]:
        try:
            return pyperclip.paste()
        except pyperclip.PyperclipException as e:
            logger.debug(f"Clipboard text unavailable: {e}")
            return None

    def _read_image(self) -> Optional[Image.Image]:
        try:
            grabbed = ImageGrab.grabclipboard()
        except (OSError, NotImplementedError) as e:
            logger.debug(f"Clipboard image unavailable: {e}")
            return None
        # grabclipboard returns a list of file names when files are copied
        return grabbed if isinstance(grabbed, Image.Image) else None

    @staticmethod
    def _image_hash(image: Image.Image) -> str:
        digest = hashlib.md5()
        digest.update(f"{image.mode}:{image.size}".encode('utf-8'))
        digest.update(image.tobytes())
        return digest.hexdigest()


class ClipboardWatcher:
    """Poll a clipboard source on the event loop and forward changes."""

    DEFAULT_POLL_INTERVAL: float = 0.5  # seconds

    def __init__(
        self,
        source: ClipboardSource,
        on_capture: Callable[[Capture], None],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Initialize clipboard watcher.

        Args:
            source: Clipboard capability to poll.
            on_capture: Called with each detected capture.
            poll_interval: Seconds between polls.
        """
        self._source = source
        self._on_capture = on_capture
        self._poll_interval = poll_interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Prime the source and start polling."""
        if self.running:
            return
        await asyncio.to_thread(self._source.prime)
        self._task = asyncio.create_task(self._poll_loop(), name="slate-clipboard-watcher")
        logger.info(f"Watching clipboard every {self._poll_interval}s")

    async def stop(self) -> None:
        """Stop polling."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def poll_once(self) -> Optional[Capture]:
        """Poll the source once and forward a change if there is one."""
        capture = await asyncio.to_thread(self._source.poll)
        if capture is not None:
            self._on_capture(capture)
        return capture

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Clipboard poll failed: {e}")
            await asyncio.sleep(self._poll_interval)
