"""Capture pipeline: clipboard change -> dedup -> blob/metadata -> store -> notify."""
import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from concurrent.futures import Executor
from contextlib import contextmanager
from datetime import datetime

from clipvault.config import REQUIRE_METADATA
from clipvault.models import (
    FILE_PATH_SEPARATOR,
    ClipboardChangedEvent,
    ClipboardContent,
    ClipboardItem,
    ContentType,
)
from clipvault.ports import BlobSink, ClipboardMonitor, ItemStore, MetadataExtractor
from clipvault.utils import build_preview, content_hash, image_extension

logger = logging.getLogger(__name__)

ItemListener = Callable[[ClipboardItem], None]


class HashLocks:
    """One lock per content hash, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # hash -> [lock, users]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ClipboardService:
    def __init__(
        self,
        monitor: ClipboardMonitor,
        storage: ItemStore,
        extractor: MetadataExtractor,
        blobs: BlobSink,
        *,
        executor: Executor | None = None,
        require_metadata: bool = REQUIRE_METADATA,
    ):
        self._monitor = monitor
        self._storage = storage
        self._extractor = extractor
        self._blobs = blobs
        self._executor = executor
        self._require_metadata = require_metadata
        self._listeners: list[ItemListener] = []
        self._hash_locks = HashLocks()
        self._disposed = False

        self._monitor.subscribe(self.on_change)
        logger.debug("ClipboardService initialized")

    @property
    def is_monitoring(self) -> bool:
        return self._monitor.is_monitoring

    def subscribe(self, listener: ItemListener) -> None:
        """Register a callback fired once for every newly stored item."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: ItemListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start_monitoring(self) -> None:
        """Start the monitor. A no-op when already monitoring."""
        if self._disposed:
            raise RuntimeError("ClipboardService has been disposed")
        if self._monitor.is_monitoring:
            logger.debug("Clipboard monitoring already running")
            return
        logger.info("Starting clipboard monitoring")
        self._monitor.start()

    def stop_monitoring(self) -> None:
        if not self._monitor.is_monitoring:
            return
        logger.info("Stopping clipboard monitoring")
        self._monitor.stop()

    def on_change(self, event: ClipboardChangedEvent) -> None:
        """Monitor callback. Never raises back into the monitor."""
        if self._disposed:
            return
        if self._executor is None:
            self._handle(event)
            return
        try:
            self._executor.submit(self._handle, event)
        except RuntimeError:
            logger.exception("Could not schedule clipboard event")

    def _handle(self, event: ClipboardChangedEvent) -> None:
        try:
            logger.debug("Clipboard changed event received: %s", event.content.kind.value)
            self.process(event)
        except Exception:
            logger.exception("Error processing clipboard content")

    def process(self, event: ClipboardChangedEvent) -> ClipboardItem | None:
        """Store ``event`` as a new item, or touch the existing one.

        Returns the new item, or None when the content was already stored.
        """
        content = event.content
        digest = content_hash(content)
        logger.debug("Processing content with hash: %s", digest[:8])

        with self._hash_locks.hold(digest):
            existing = self._storage.find_by_hash(digest)
            if existing is not None:
                logger.debug("Duplicate content found, updating last accessed time")
                self._storage.touch_last_accessed(existing.id, event.timestamp)
                return None

            item = self._build_item(event, digest)
            self._persist(item, content)

        logger.info("Clipboard item saved: %s, type: %s", item.id, item.content_type.value)
        self._notify(item)
        return item

    def _build_item(self, event: ClipboardChangedEvent, digest: str) -> ClipboardItem:
        content = event.content
        item = ClipboardItem(
            id=uuid.uuid4().hex,
            content_type=content.kind,
            text_content=content.text,
            file_path=None,
            preview_text=build_preview(content),
            content_hash=digest,
            created_at=event.timestamp,
            last_accessed_at=event.timestamp,
            source_app=event.source_app,
            html_content=content.html,
            rtf_content=content.rtf,
        )
        if content.file_paths and not (content.kind == ContentType.IMAGE and content.image_bytes is not None):
            item.file_path = FILE_PATH_SEPARATOR.join(content.file_paths)
        return item

    def _persist(self, item: ClipboardItem, content: ClipboardContent) -> None:
        blob_path = None
        if content.kind == ContentType.IMAGE and content.image_bytes is not None:
            blob_path = self._blobs.write(content.image_bytes, image_extension(content.image_bytes))
            item.file_path = blob_path

        try:
            item.metadata = self._extract_metadata(content, item.id)
            self._storage.add_item(item)
        except Exception:
            if blob_path:
                self._discard_blob(blob_path)
            raise

    def _extract_metadata(self, content: ClipboardContent, item_id: str):
        try:
            return self._extractor.extract(content, item_id)
        except Exception:
            if self._require_metadata:
                raise
            logger.warning("Metadata extraction failed for %s, saving without metadata", item_id, exc_info=True)
            return None

    def _discard_blob(self, path: str) -> None:
        try:
            self._blobs.delete(path)
        except Exception:
            logger.warning("Failed to discard blob %s", path, exc_info=True)

    def _notify(self, item: ClipboardItem) -> None:
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception:
                logger.exception("item_added listener failed")

    def copy_out(self, item: ClipboardItem) -> bool:
        """Put ``item`` back on the system clipboard and mark it accessed.

        Returns False, without touching the item, when its image blob is gone.
        """
        content = self._reconstruct(item)
        if content is None:
            return False
        self._monitor.set_content(content)
        self._storage.touch_last_accessed(item.id, datetime.now())
        logger.debug("Copied item to clipboard: %s", item.id)
        return True

    def _reconstruct(self, item: ClipboardItem) -> ClipboardContent | None:
        image_bytes = None
        if item.content_type == ContentType.IMAGE and item.file_path:
            image_bytes = self._blobs.read(item.file_path)
            if image_bytes is None:
                logger.warning("Image blob missing for item %s: %s", item.id, item.file_path)
                return None

        return ClipboardContent(
            kind=item.content_type,
            text=item.text_content,
            image_bytes=image_bytes,
            file_paths=item.file_paths or None,
            source_app=item.source_app,
            html=item.html_content,
            rtf=item.rtf_content,
        )

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        try:
            self._monitor.unsubscribe(self.on_change)
        except Exception:
            logger.exception("Error unsubscribing from clipboard monitor")
        try:
            self._monitor.close()
        except Exception:
            logger.exception("Error releasing clipboard monitor")
        logger.debug("ClipboardService disposed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False
