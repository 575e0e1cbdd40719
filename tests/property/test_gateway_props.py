"""Property-based tests for Command Gateway.

Feature: clipboard-history, Property 14: Argument validation
Feature: clipboard-history, Property 15: Read commands degrade to empty
Feature: clipboard-history, Property 16: Uniform command results
Feature: clipboard-history, Property 17: Capture and command scenario
"""

import asyncio
import sqlite3

import pytest
from hypothesis import given, strategies as st, settings

from slate.core.controller import CaptureController
from slate.core.enricher import LinkEnricher
from slate.core.errors import EnrichmentError, NotFoundError, StorageError, ValidationError
from slate.core.gateway import CommandGateway
from slate.core.models import ClipboardItem, ItemType, LinkMetadata, TextCapture
from slate.core.store import MemoryHistoryStore, SQLiteHistoryStore
from slate.core.watcher import ClipboardSource


class FakeClipboard(ClipboardSource):
    """Records writes instead of touching the OS clipboard."""

    def __init__(self, fail: bool = False) -> None:
        self.written: list[str] = []
        self.fail = fail

    def poll(self):
        return None

    def write_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("clipboard locked")
        self.written.append(text)


class BrokenStore(MemoryHistoryStore):
    """Every read fails."""

    async def list_all(self):
        raise StorageError("database is corrupt")

    async def list_pinned(self):
        raise StorageError("database is corrupt")


class ExplodingStore(MemoryHistoryStore):
    """Fails with an error outside the Slate hierarchy."""

    async def toggle(self, item_id):
        raise RuntimeError("unexpected failure")


def unreachable(url: str, timeout_ms: int) -> LinkMetadata:
    raise EnrichmentError(f"cannot reach {url}")


def make_gateway(store=None, clipboard=None, fetcher=unreachable):
    store = store or MemoryHistoryStore()
    clipboard = clipboard or FakeClipboard()
    enricher = LinkEnricher(fetcher, timeout_ms=200)
    return store, clipboard, CommandGateway(store, enricher, clipboard)


def seed(store: MemoryHistoryStore, *items: ClipboardItem) -> None:
    async def run():
        for item in items:
            await store.insert(item)
    asyncio.run(run())


blank_ids = st.one_of(st.none(), st.text(alphabet=' \t\n', max_size=5), st.integers())


class TestArgumentValidation:
    """Property 14: Argument validation.

    *For any* missing, blank or non-string id, mutating commands SHALL
    fail with ValidationError before touching the store.
    """

    @given(blank_ids)
    @settings(max_examples=50, deadline=None)
    def test_blank_ids_rejected(self, bad_id):
        """Feature: clipboard-history, Property 14: Argument validation"""
        _, _, gateway = make_gateway()

        for command in (gateway.delete, gateway.toggle_pin, gateway.pin, gateway.unpin):
            with pytest.raises(ValidationError):
                asyncio.run(command(bad_id))

    def test_delete_missing_returns_false(self):
        _, _, gateway = make_gateway()

        assert asyncio.run(gateway.delete("missing")) is False

    def test_toggle_missing_raises_not_found(self):
        _, _, gateway = make_gateway()

        with pytest.raises(NotFoundError):
            asyncio.run(gateway.toggle_pin("missing"))

    def test_copy_requires_content(self):
        _, clipboard, gateway = make_gateway()

        outcome = asyncio.run(gateway.copy_to_clipboard(""))

        assert outcome['success'] is False
        assert outcome['error']
        assert clipboard.written == []


class TestReadCommandsDegrade:
    """Property 15: Read commands degrade to empty.

    When the store cannot be read, get-all and get-pinned SHALL return an
    empty list instead of raising.
    """

    def test_broken_store_gives_empty_lists(self):
        """Feature: clipboard-history, Property 15: Read commands degrade to empty"""
        _, _, gateway = make_gateway(store=BrokenStore())

        assert asyncio.run(gateway.get_all()) == []
        assert asyncio.run(gateway.get_pinned()) == []
        assert asyncio.run(gateway.search("anything")) == []

    def test_corrupt_row_gives_empty_listing(self, tmp_path):
        db_path = tmp_path / "history.db"
        store, _, gateway = make_gateway(store=SQLiteHistoryStore(db_path))
        seed(store, ClipboardItem(
            id="l1", type=ItemType.LINK, content="https://a.example/", timestamp=1, pinned=True,
            metadata=LinkMetadata.placeholder("https://a.example/"),
        ))

        conn = sqlite3.connect(db_path)
        conn.execute("UPDATE clipboard_items SET metadata = '{broken'")
        conn.commit()
        conn.close()

        all_items = asyncio.run(gateway.dispatch('get-all'))
        pinned = asyncio.run(gateway.dispatch('get-pinned'))
        asyncio.run(store.close())

        assert all_items.ok is True
        assert all_items.value == []
        assert pinned.ok is True
        assert pinned.value == []


class TestUniformResults:
    """Property 16: Uniform command results.

    dispatch SHALL wrap values and typed errors into CommandResult and
    never let an exception escape.
    """

    @given(st.text(min_size=1, max_size=20).filter(lambda s: s.strip()))
    @settings(max_examples=30, deadline=None)
    def test_unknown_ids_become_not_found_results(self, item_id: str):
        """Feature: clipboard-history, Property 16: Uniform command results"""
        _, _, gateway = make_gateway()

        result = asyncio.run(gateway.dispatch('toggle-pin', item_id))

        assert result.ok is False
        assert result.error_type == 'NotFoundError'
        assert result.to_dict()['value'] is None

    def test_unknown_command(self):
        _, _, gateway = make_gateway()

        result = asyncio.run(gateway.dispatch('set-window-opacity', 0.5))

        assert result.ok is False
        assert result.error_type == 'ValidationError'

    def test_wrong_argument_count(self):
        _, _, gateway = make_gateway()

        result = asyncio.run(gateway.dispatch('delete'))

        assert result.ok is False
        assert result.error_type == 'ValidationError'

    def test_non_string_query_is_validation_error(self):
        _, _, gateway = make_gateway()

        result = asyncio.run(gateway.dispatch('search', 123))

        assert result.ok is False
        assert result.error_type == 'ValidationError'

    def test_unexpected_exception_becomes_internal_error(self):
        store = ExplodingStore()
        _, _, gateway = make_gateway(store=store)
        seed(store, ClipboardItem(id="a", type=ItemType.TEXT, content="hi", timestamp=5))

        result = asyncio.run(gateway.dispatch('toggle-pin', "a"))

        assert result.ok is False
        assert result.error_type == 'InternalError'
        assert "unexpected failure" in result.error

    def test_values_serialized_to_wire_shape(self):
        store, _, gateway = make_gateway()
        seed(store, ClipboardItem(id="a", type=ItemType.TEXT, content="hi", timestamp=5))

        result = asyncio.run(gateway.dispatch('get-all'))

        assert result.ok is True
        assert result.to_dict()['value'] == [{
            'id': "a", 'type': "text", 'content': "hi",
            'timestamp': 5, 'pinned': False, 'metadata': None,
        }]


class TestCopyAndPreview:
    """copy-to-clipboard and get-link-preview behavior."""

    def test_copy_writes_and_hides(self):
        _, clipboard, gateway = make_gateway()
        hidden = []
        gateway.subscribe_hide(lambda: hidden.append(True))

        outcome = asyncio.run(gateway.copy_to_clipboard("hello"))

        assert outcome == {'success': True}
        assert clipboard.written == ["hello"]
        assert hidden == [True]

    def test_copy_failure_reported(self):
        _, _, gateway = make_gateway(clipboard=FakeClipboard(fail=True))
        hidden = []
        gateway.subscribe_hide(lambda: hidden.append(True))

        outcome = asyncio.run(gateway.copy_to_clipboard("hello"))

        assert outcome == {'success': False, 'error': "clipboard locked"}
        assert hidden == []

    def test_preview_invalid_url_is_none(self):
        _, _, gateway = make_gateway()

        assert asyncio.run(gateway.get_link_preview("not a url")) is None
        assert asyncio.run(gateway.get_link_preview("example.com")) is None
        assert asyncio.run(gateway.get_link_preview(None)) is None

    def test_preview_failure_is_placeholder(self):
        _, _, gateway = make_gateway()

        metadata = asyncio.run(gateway.get_link_preview("https://a.example/"))

        assert metadata == LinkMetadata.placeholder("https://a.example/")


class TestSearch:
    """Substring and type filtering over the listing."""

    def test_filters_by_query_and_type(self):
        store, _, gateway = make_gateway()
        seed(
            store,
            ClipboardItem(id="1", type=ItemType.TEXT, content="Hello world", timestamp=1),
            ClipboardItem(id="2", type=ItemType.LINK, content="https://hello.example/", timestamp=2),
            ClipboardItem(id="3", type=ItemType.TEXT, content="goodbye", timestamp=3, pinned=True),
        )

        assert [i.id for i in asyncio.run(gateway.search("HELLO"))] == ["2", "1"]
        assert [i.id for i in asyncio.run(gateway.search("hello", "link"))] == ["2"]
        assert [i.id for i in asyncio.run(gateway.search("", "all"))] == ["3", "2", "1"]

    def test_unknown_type_rejected(self):
        _, _, gateway = make_gateway()

        with pytest.raises(ValidationError):
            asyncio.run(gateway.search("", "video"))


class TestScenario:
    """Property 17: Capture and command scenario.

    Capture, pin, re-capture and link capture SHALL leave the history in
    the expected state at every step.
    """

    def test_capture_pin_dedup_link(self):
        """Feature: clipboard-history, Property 17: Capture and command scenario"""
        store, clipboard, gateway = make_gateway()
        controller = CaptureController(store, LinkEnricher(unreachable, timeout_ms=200))

        async def run():
            await controller.process(TextCapture("hello"))
            items = await gateway.get_all()
            assert len(items) == 1
            assert items[0].type is ItemType.TEXT
            assert items[0].pinned is False

            toggled = await gateway.toggle_pin(items[0].id)
            assert toggled.pinned is True
            assert (await gateway.get_all())[0].pinned is True

            await controller.process(TextCapture("hello"))
            assert len(await gateway.get_all()) == 1

            await controller.process(TextCapture("https://a.example/"))
            items = await gateway.get_all()
            assert len(items) == 2
            link = next(item for item in items if item.type is ItemType.LINK)
            assert link.metadata.url == "https://a.example/"

            # Pinned text stays ahead of the newer link
            assert items[0].content == "hello"
            assert [item.id for item in await gateway.get_pinned()] == [items[0].id]

        asyncio.run(run())
