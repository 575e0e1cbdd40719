"""Command Gateway component exposing operations to the presentation layer."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .classifier import is_valid_url
from .enricher import LinkEnricher
from .errors import SlateError, StorageError, ValidationError
from .models import ClipboardItem, ItemType, LinkMetadata
from .store import HistoryStore
from .watcher import ClipboardSource

logger = logging.getLogger(__name__)

INTERNAL_ERROR = 'InternalError'


@dataclass
class CommandResult:
    """Uniform outcome of a dispatched command."""
    ok: bool
    value: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'ok': self.ok,
            'value': _to_wire(self.value),
            'error': self.error,
            'error_type': self.error_type,
        }


def _to_wire(value: Any) -> Any:
    if isinstance(value, (ClipboardItem, LinkMetadata)):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_wire(v) for v in value]
    return value


def _require(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {name} provided: {value!r}")
    return value


class CommandGateway:
    """Validate command arguments and delegate to the store or enricher."""

    def __init__(
        self,
        store: HistoryStore,
        enricher: LinkEnricher,
        clipboard: ClipboardSource,
    ) -> None:
        """Initialize command gateway.

        Args:
            store: History store.
            enricher: Link enricher for on-demand previews.
            clipboard: Clipboard capability used by copy-to-clipboard.
        """
        self._store = store
        self._enricher = enricher
        self._clipboard = clipboard
        self._hide_subscribers: list[Callable[[], Any]] = []
        self._commands: dict[str, Callable[..., Any]] = {
            'get-all': self.get_all,
            'get-pinned': self.get_pinned,
            'delete': self.delete,
            'toggle-pin': self.toggle_pin,
            'pin': self.pin,
            'unpin': self.unpin,
            'copy-to-clipboard': self.copy_to_clipboard,
            'get-link-preview': self.get_link_preview,
            'search': self.search,
            'stats': self.stats,
        }

    @property
    def commands(self) -> list[str]:
        return sorted(self._commands)

    def subscribe_hide(self, callback: Callable[[], Any]) -> None:
        """Register a callback asked to hide the window after a copy."""
        self._hide_subscribers.append(callback)

    async def get_all(self) -> list[ClipboardItem]:
        """All items, pinned first. Degrades to an empty list on storage failure."""
        try:
            return await self._store.list_all()
        except SlateError as e:
            logger.error(f"Error getting clipboard data: {e}")
            return []

    async def get_pinned(self) -> list[ClipboardItem]:
        """Pinned items, newest first. Degrades to an empty list on storage failure."""
        try:
            return await self._store.list_pinned()
        except SlateError as e:
            logger.error(f"Error getting pinned clipboard data: {e}")
            return []

    async def search(self, query: str = "", item_type: Optional[str] = None) -> list[ClipboardItem]:
        """Filter the full listing by case-insensitive substring and type.

        Args:
            query: Substring to look for in item content.
            item_type: One of text, image, link, or None/"all" for every type.

        Returns:
            Matching items in listing order.

        Raises:
            ValidationError: If query is not a string or item_type is not a
                known type.
        """
        if query is not None and not isinstance(query, str):
            raise ValidationError(f"Invalid query provided: {query!r}")

        wanted: Optional[ItemType] = None
        if item_type and item_type != 'all':
            try:
                wanted = ItemType(item_type)
            except ValueError as e:
                raise ValidationError(f"Unknown item type: {item_type!r}") from e

        needle = (query or "").lower()
        return [
            item for item in await self.get_all()
            if needle in item.content.lower() and (wanted is None or item.type is wanted)
        ]

    async def delete(self, item_id: str) -> bool:
        """Delete an item.

        Returns:
            True if a row was removed, False if the id was not stored.

        Raises:
            ValidationError: If the id is missing or empty.
            StorageError: If the store rejects the delete.
        """
        item_id = _require(item_id, 'ID')
        removed = await self._store.remove(item_id)
        if removed:
            logger.info(f"Deleted clipboard item {item_id}")
        return removed

    async def toggle_pin(self, item_id: str) -> ClipboardItem:
        """Flip an item's pin state and return the updated item.

        Raises:
            ValidationError: If the id is missing or empty.
            NotFoundError: If the id is not stored.
        """
        item_id = _require(item_id, 'ID')
        return await self._store.toggle(item_id)

    async def pin(self, item_id: str) -> ClipboardItem:
        item_id = _require(item_id, 'ID')
        return await self._store.set_pinned(item_id, True)

    async def unpin(self, item_id: str) -> ClipboardItem:
        item_id = _require(item_id, 'ID')
        return await self._store.set_pinned(item_id, False)

    async def copy_to_clipboard(self, content: str) -> dict[str, Any]:
        """Write content to the OS clipboard and ask the window to hide.

        Never raises; failures come back as ``{'success': False, 'error': ...}``.
        """
        try:
            content = _require(content, 'content')
            self._clipboard.write_text(content)
        except Exception as e:
            logger.error(f"Error during copy-to-clipboard: {e}")
            return {'success': False, 'error': str(e)}

        for callback in list(self._hide_subscribers):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Hide subscriber failed: {e}")

        return {'success': True}

    async def get_link_preview(self, url: str) -> Optional[LinkMetadata]:
        """Fetch a preview on demand. Returns None for an invalid URL."""
        if not isinstance(url, str) or not is_valid_url(url.strip()):
            return None
        return await self._enricher.enrich(url.strip())

    async def stats(self) -> dict:
        try:
            return await self._store.stats()
        except SlateError as e:
            raise StorageError("Could not compute history statistics", e) from e

    async def dispatch(self, command: str, *args: Any) -> CommandResult:
        """Run a named command and wrap its outcome.

        Args:
            command: Command name, e.g. ``get-all`` or ``toggle-pin``.
            *args: Positional arguments for the command.

        Returns:
            CommandResult with the value on success, or the error message
            and error class name on failure. Unexpected exceptions are
            logged and reported as ``InternalError``.
        """
        handler = self._commands.get(command)
        if handler is None:
            error = ValidationError(f"Unknown command: {command!r}")
            return CommandResult(ok=False, error=str(error), error_type=type(error).__name__)

        try:
            inspect.signature(handler).bind(*args)
        except TypeError as e:
            logger.error(f"Bad arguments for {command}: {e}")
            return CommandResult(ok=False, error=f"Bad arguments for {command}: {e}", error_type='ValidationError')

        try:
            value = await handler(*args)
        except SlateError as e:
            logger.error(f"Command {command} failed: {e}")
            return CommandResult(ok=False, error=str(e), error_type=type(e).__name__)
        except Exception as e:
            logger.exception(f"Unexpected error in command {command}")
            return CommandResult(ok=False, error=f"Internal error in {command}: {e}", error_type=INTERNAL_ERROR)

        return CommandResult(ok=True, value=value)
