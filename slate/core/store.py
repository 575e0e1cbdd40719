"""History Store component for persisting clipboard items."""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path
from typing import Optional

from .errors import NotFoundError, StorageError
from .models import ClipboardItem, ItemType, LinkMetadata, sort_key

logger = logging.getLogger(__name__)


class HistoryStore(ABC):
    """Single source of truth for clipboard history.

    Implementations keep ``content`` unique: ``insert`` rejects an item
    whose content is already stored. Callers check ``find_by_content``
    first to discard duplicates quietly.
    """

    @abstractmethod
    async def find_by_content(self, content: str) -> Optional[ClipboardItem]:
        """Return the item whose content matches exactly, if any."""

    @abstractmethod
    async def get(self, item_id: str) -> Optional[ClipboardItem]:
        """Return the item with the given id, if any."""

    @abstractmethod
    async def insert(self, item: ClipboardItem) -> ClipboardItem:
        """Durably store a new item.

        Raises:
            StorageError: If the write is rejected, including a repeated
                id or content.
        """

    @abstractmethod
    async def list_all(self) -> list[ClipboardItem]:
        """All items, pinned first, then newest first."""

    @abstractmethod
    async def list_pinned(self) -> list[ClipboardItem]:
        """Pinned items, newest first."""

    @abstractmethod
    async def set_pinned(self, item_id: str, pinned: bool) -> ClipboardItem:
        """Set the pin state and return the updated item.

        Raises:
            NotFoundError: If no item has this id.
        """

    @abstractmethod
    async def remove(self, item_id: str) -> bool:
        """Delete an item. Returns False when the id was not stored."""

    async def toggle(self, item_id: str) -> ClipboardItem:
        """Flip the pin state of an item.

        Read-modify-write; concurrent toggles of the same id on the
        same loop may interleave.

        Raises:
            NotFoundError: If no item has this id.
        """
        item = await self.get(item_id)
        if item is None:
            raise NotFoundError(f"Clipboard item not found: {item_id}")
        return await self.set_pinned(item_id, not item.pinned)

    async def stats(self) -> dict:
        """Count stored items in total, pinned, and per type."""
        items = await self.list_all()
        by_type = Counter(item.type.value for item in items)
        return {
            'total': len(items),
            'pinned': sum(1 for item in items if item.pinned),
            'by_type': {t.value: by_type.get(t.value, 0) for t in ItemType},
        }

    async def compact(self) -> None:
        """Reclaim space. Best effort."""

    async def close(self) -> None:
        """Release resources."""


class MemoryHistoryStore(HistoryStore):
    """Dict-backed store for tests and headless use."""

    def __init__(self) -> None:
        self._items: dict[str, ClipboardItem] = {}

    async def find_by_content(self, content: str) -> Optional[ClipboardItem]:
        for item in self._items.values():
            if item.content == content:
                return item
        return None

    async def get(self, item_id: str) -> Optional[ClipboardItem]:
        return self._items.get(item_id)

    async def insert(self, item: ClipboardItem) -> ClipboardItem:
        if item.id in self._items:
            raise StorageError(f"Duplicate item id: {item.id}")
        if any(stored.content == item.content for stored in self._items.values()):
            raise StorageError(f"Content already stored for item {item.id}")
        self._items[item.id] = item
        return item

    async def list_all(self) -> list[ClipboardItem]:
        return sorted(self._items.values(), key=sort_key)

    async def list_pinned(self) -> list[ClipboardItem]:
        pinned = [item for item in self._items.values() if item.pinned]
        return sorted(pinned, key=lambda item: -item.timestamp)

    async def set_pinned(self, item_id: str, pinned: bool) -> ClipboardItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(f"Clipboard item not found: {item_id}")
        updated = item.with_pinned(pinned)
        self._items[item_id] = updated
        return updated

    async def remove(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None


class SQLiteHistoryStore(HistoryStore):
    """Persist clipboard history in a SQLite database."""

    def __init__(self, db_path: Path) -> None:
        """Initialize store.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StorageError: If the database cannot be opened.
        """
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            # Opened on one thread, then used only from the service event loop
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open history database at {self._db_path}", e) from e

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self._conn.cursor()

        # WAL keeps committed rows on disk if the process dies mid-write
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clipboard_items (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                pinned BOOLEAN NOT NULL DEFAULT 0,
                metadata TEXT
            )
        """)

        cursor.execute("DROP INDEX IF EXISTS idx_content")
        cursor.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_content_unique ON clipboard_items(content)"
        )
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_order ON clipboard_items(pinned, timestamp)")

        self._conn.commit()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"History database error: {e}", e) from e

    def _fetch_items(self, sql: str, params: tuple = ()) -> list[ClipboardItem]:
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"History database error: {e}", e) from e
        return [self._row_to_item(row) for row in rows]

    def _fetch_item(self, sql: str, params: tuple = ()) -> Optional[ClipboardItem]:
        items = self._fetch_items(sql, params)
        return items[0] if items else None

    def _commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"History database commit failed: {e}", e) from e

    async def find_by_content(self, content: str) -> Optional[ClipboardItem]:
        return self._fetch_item(
            "SELECT * FROM clipboard_items WHERE content = ? LIMIT 1", (content,)
        )

    async def get(self, item_id: str) -> Optional[ClipboardItem]:
        return self._fetch_item("SELECT * FROM clipboard_items WHERE id = ?", (item_id,))

    async def insert(self, item: ClipboardItem) -> ClipboardItem:
        metadata = json.dumps(item.metadata.to_dict()) if item.metadata else None
        try:
            self._conn.execute("""
                INSERT INTO clipboard_items (id, type, content, timestamp, pinned, metadata)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                item.id,
                item.type.value,
                item.content,
                item.timestamp,
                item.pinned,
                metadata,
            ))
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StorageError(f"Failed to save clipboard item {item.id}", e) from e
        return item

    async def list_all(self) -> list[ClipboardItem]:
        return self._fetch_items(
            "SELECT * FROM clipboard_items ORDER BY pinned DESC, timestamp DESC"
        )

    async def list_pinned(self) -> list[ClipboardItem]:
        return self._fetch_items(
            "SELECT * FROM clipboard_items WHERE pinned = 1 ORDER BY timestamp DESC"
        )

    async def set_pinned(self, item_id: str, pinned: bool) -> ClipboardItem:
        cursor = self._execute(
            "UPDATE clipboard_items SET pinned = ? WHERE id = ?", (pinned, item_id)
        )
        self._commit()
        if cursor.rowcount == 0:
            raise NotFoundError(f"Clipboard item not found: {item_id}")

        item = await self.get(item_id)
        if item is None:
            raise NotFoundError(f"Clipboard item not found: {item_id}")
        return item

    async def remove(self, item_id: str) -> bool:
        cursor = self._execute("DELETE FROM clipboard_items WHERE id = ?", (item_id,))
        self._commit()
        return cursor.rowcount > 0

    async def stats(self) -> dict:
        try:
            total = self._conn.execute("SELECT COUNT(*) FROM clipboard_items").fetchone()[0]
            pinned = self._conn.execute(
                "SELECT COUNT(*) FROM clipboard_items WHERE pinned = 1"
            ).fetchone()[0]
            rows = self._conn.execute("""
                SELECT type, COUNT(*) AS count
                FROM clipboard_items
                GROUP BY type
            """).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"History database error: {e}", e) from e
        counts = {row['type']: row['count'] for row in rows}
        return {
            'total': total,
            'pinned': pinned,
            'by_type': {t.value: counts.get(t.value, 0) for t in ItemType},
        }

    async def compact(self) -> None:
        try:
            self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            self._conn.execute("VACUUM")
            logger.info(f"Compacted history database: {self._db_path}")
        except sqlite3.Error as e:
            logger.warning(f"Compaction failed for {self._db_path}: {e}")

    async def close(self) -> None:
        self._conn.close()

    def _row_to_item(self, row: sqlite3.Row) -> ClipboardItem:
        """Convert database row to ClipboardItem.

        Raises:
            StorageError: If the stored row cannot be decoded.
        """
        try:
            metadata = json.loads(row['metadata']) if row['metadata'] else None
            return ClipboardItem(
                id=row['id'],
                type=ItemType(row['type']),
                content=row['content'],
                timestamp=row['timestamp'],
                pinned=bool(row['pinned']),
                metadata=LinkMetadata.from_dict(metadata) if metadata else None,
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise StorageError(f"Corrupt history row {row['id']}", e) from e
