import threading
import time
from datetime import datetime

import pytest

from clipvault.models import ClipboardChangedEvent, ClipboardContent, ClipboardItem, ClipboardMetadata, ContentType
from clipvault.ports import BlobSink, ClipboardMonitor, ItemStore, MetadataExtractor
from clipvault.storage import StorageManager


class FakeMonitor(ClipboardMonitor):
    def __init__(self):
        super().__init__()
        self._monitoring = False
        self.start_calls = 0
        self.stop_calls = 0
        self.close_calls = 0
        self.unsubscribe_calls = 0
        self.start_error: Exception | None = None
        self.stop_error: Exception | None = None
        self.written: list[ClipboardContent] = []

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def start(self) -> None:
        self.start_calls += 1
        if self.start_error:
            raise self.start_error
        self._monitoring = True

    def stop(self) -> None:
        self.stop_calls += 1
        if self.stop_error:
            raise self.stop_error
        self._monitoring = False

    def close(self) -> None:
        self.close_calls += 1
        self._monitoring = False

    def unsubscribe(self, listener) -> None:
        self.unsubscribe_calls += 1
        super().unsubscribe(listener)

    def set_content(self, content: ClipboardContent) -> None:
        self.written.append(content)

    def fire(self, event: ClipboardChangedEvent) -> None:
        self._emit(event)


class InMemoryStore(ItemStore):
    """Dict-backed store; ``lookup_delay`` widens the lookup/insert race window."""

    def __init__(self, lookup_delay: float = 0.0):
        self.items: dict[str, ClipboardItem] = {}
        self.lookup_delay = lookup_delay
        self.fail_insert = False
        self.touches: list[tuple[str, datetime]] = []
        self._lock = threading.Lock()

    def find_by_hash(self, content_hash: str) -> ClipboardItem | None:
        with self._lock:
            found = next((i for i in self.items.values() if i.content_hash == content_hash), None)
        if self.lookup_delay:
            time.sleep(self.lookup_delay)
        return found

    def add_item(self, item: ClipboardItem) -> None:
        if self.fail_insert:
            raise RuntimeError("insert failed")
        with self._lock:
            self.items[item.id] = item

    def touch_last_accessed(self, item_id: str, accessed_at: datetime) -> None:
        with self._lock:
            self.touches.append((item_id, accessed_at))
            item = self.items[item_id]
            if accessed_at > item.last_accessed_at:
                item.last_accessed_at = accessed_at

    def count_hash(self, content_hash: str) -> int:
        return sum(1 for i in self.items.values() if i.content_hash == content_hash)


class FakeExtractor(MetadataExtractor):
    def __init__(self):
        self.fail = False
        self.calls: list[tuple[ClipboardContent, str]] = []

    def extract(self, content: ClipboardContent, item_id: str) -> ClipboardMetadata:
        self.calls.append((content, item_id))
        if self.fail:
            raise ValueError("extraction failed")
        return ClipboardMetadata(item_id=item_id, character_count=len(content.text or ""))


class MemoryBlobSink(BlobSink):
    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.fail_write = False
        self._counter = 0

    def write(self, data: bytes, extension: str) -> str:
        if self.fail_write:
            raise OSError("disk full")
        self._counter += 1
        path = f"/blobs/{self._counter}{extension}"
        self.blobs[path] = bytes(data)
        return path

    def read(self, path: str) -> bytes | None:
        return self.blobs.get(path)

    def delete(self, path: str) -> None:
        self.blobs.pop(path, None)


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def fake_monitor():
    return FakeMonitor()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def slow_store():
    return InMemoryStore(lookup_delay=0.01)


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def blobs():
    return MemoryBlobSink()


@pytest.fixture
def make_content():
    """Factory fixture to create ClipboardContent instances for testing."""

    def _make_content(
        text: str | None = "hello world",
        kind: ContentType | None = None,
        image_bytes: bytes | None = None,
        file_paths: tuple[str, ...] | list[str] | None = None,
    ) -> ClipboardContent:
        if kind is None:
            if image_bytes is not None:
                kind = ContentType.IMAGE
            elif file_paths:
                kind = ContentType.FILE_PATHS
            else:
                kind = ContentType.TEXT
        return ClipboardContent(
            kind=kind,
            text=text if kind not in (ContentType.IMAGE, ContentType.FILE_PATHS) else None,
            image_bytes=image_bytes,
            file_paths=tuple(file_paths) if file_paths else None,
        )

    return _make_content


@pytest.fixture
def make_event():
    def _make_event(content: ClipboardContent, timestamp: datetime | None = None, source_app: str | None = "Terminal"):
        return ClipboardChangedEvent(
            content=content,
            source_app=source_app,
            timestamp=timestamp or datetime(2024, 1, 1, 12, 0, 0),
        )

    return _make_event


@pytest.fixture
def make_item():
    """Factory fixture to create ClipboardItem instances for testing."""

    def _make_item(
        text: str = "hello world",
        content_type: ContentType = ContentType.TEXT,
        content_hash: str | None = None,
        file_path: str | None = None,
        item_id: str | None = None,
        accessed_at: datetime | None = None,
    ) -> ClipboardItem:
        when = accessed_at or datetime(2024, 1, 1, 12, 0, 0)
        return ClipboardItem(
            id=item_id or f"id_{text}",
            content_type=content_type,
            text_content=text if content_type != ContentType.IMAGE else None,
            file_path=file_path,
            preview_text=text[:60] if text else "Image",
            content_hash=content_hash or f"hash_{text}",
            created_at=when,
            last_accessed_at=when,
        )

    return _make_item
