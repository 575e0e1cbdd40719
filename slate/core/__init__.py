"""Core components for Slate."""

from .errors import SlateError, ValidationError, NotFoundError, StorageError, EnrichmentError, Skip
from .models import ClipboardItem, ItemType, LinkMetadata, TextCapture, ImageCapture
from .classifier import classify, is_valid_url
from .enricher import LinkEnricher, fetch_link_metadata
from .store import HistoryStore, MemoryHistoryStore, SQLiteHistoryStore
from .controller import CaptureController
from .watcher import ClipboardSource, ClipboardWatcher, SystemClipboard
from .gateway import CommandGateway, CommandResult
from .service import ClipboardService
from .config import Config, load_config, save_config, ConfigError

__all__ = [
    "SlateError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "EnrichmentError",
    "Skip",
    "ClipboardItem",
    "ItemType",
    "LinkMetadata",
    "TextCapture",
    "ImageCapture",
    "classify",
    "is_valid_url",
    "LinkEnricher",
    "fetch_link_metadata",
    "HistoryStore",
    "MemoryHistoryStore",
    "SQLiteHistoryStore",
    "CaptureController",
    "ClipboardSource",
    "ClipboardWatcher",
    "SystemClipboard",
    "CommandGateway",
    "CommandResult",
    "ClipboardService",
    "Config",
    "load_config",
    "save_config",
    "ConfigError",
]
