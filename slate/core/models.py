"""Data model for clipboard history items."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from PIL import Image

PREVIEW_UNAVAILABLE = "Preview unavailable"


class ItemType(str, Enum):
    """Semantic type of a clipboard item. Fixed at creation."""
    TEXT = "text"
    IMAGE = "image"
    LINK = "link"


@dataclass
class LinkMetadata:
    """Page metadata attached to link items."""
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def placeholder(cls, url: str) -> "LinkMetadata":
        """Stable fallback shape used when a preview cannot be fetched."""
        return cls(url=url, error=PREVIEW_UNAVAILABLE)

    @property
    def is_placeholder(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (
                ('title', self.title),
                ('description', self.description),
                ('image', self.image),
                ('url', self.url),
                ('error', self.error),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkMetadata":
        return cls(
            title=data.get('title'),
            description=data.get('description'),
            image=data.get('image'),
            url=data.get('url'),
            error=data.get('error'),
        )


@dataclass
class ClipboardItem:
    """A persisted clipboard history entry.

    ``content`` is the deduplication key. Only ``pinned`` changes after
    the item is created.
    """
    id: str
    type: ItemType
    content: str
    timestamp: int  # ms since epoch
    pinned: bool = False
    metadata: Optional[LinkMetadata] = None

    def with_pinned(self, pinned: bool) -> "ClipboardItem":
        """Return a copy with a new pin state."""
        return replace(self, pinned=pinned)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape handed to the presentation layer."""
        return {
            'id': self.id,
            'type': self.type.value,
            'content': self.content,
            'timestamp': self.timestamp,
            'pinned': self.pinned,
            'metadata': self.metadata.to_dict() if self.metadata else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClipboardItem":
        metadata = data.get('metadata')
        return cls(
            id=data['id'],
            type=ItemType(data['type']),
            content=data['content'],
            timestamp=int(data['timestamp']),
            pinned=bool(data.get('pinned', False)),
            metadata=LinkMetadata.from_dict(metadata) if metadata else None,
        )


def sort_key(item: ClipboardItem) -> tuple[bool, int]:
    """Listing order: pinned before unpinned, newest first within each group."""
    return (not item.pinned, -item.timestamp)


@dataclass(frozen=True)
class TextCapture:
    """Raw text read from the clipboard."""
    text: str


@dataclass(frozen=True)
class ImageCapture:
    """Raw image read from the clipboard."""
    image: Optional[Image.Image] = field(default=None, compare=False)

    def is_empty(self) -> bool:
        if self.image is None:
            return True
        width, height = self.image.size
        return width == 0 or height == 0


@dataclass(frozen=True)
class Classification:
    """Result of classifying a capture."""
    type: ItemType
    content: str
