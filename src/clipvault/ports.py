"""Interfaces the capture service depends on.

Concrete adapters live in ``monitor``, ``storage``, ``metadata`` and ``blobs``;
tests swap in in-memory fakes.
"""
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from clipvault.models import ClipboardChangedEvent, ClipboardContent, ClipboardItem, ClipboardMetadata

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ClipboardChangedEvent], None]


class ClipboardMonitor(ABC):
    """Watches the system clipboard and delivers change notifications."""

    def __init__(self):
        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, event: ClipboardChangedEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Clipboard change listener failed")

    @property
    @abstractmethod
    def is_monitoring(self) -> bool: ...

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def set_content(self, content: ClipboardContent) -> None:
        """Overwrite the system clipboard with ``content``."""

    @abstractmethod
    def close(self) -> None: ...


class ItemStore(ABC):
    @abstractmethod
    def find_by_hash(self, content_hash: str) -> ClipboardItem | None: ...

    @abstractmethod
    def add_item(self, item: ClipboardItem) -> None: ...

    @abstractmethod
    def touch_last_accessed(self, item_id: str, accessed_at: datetime) -> None:
        """Move ``last_accessed_at`` forward; never backwards."""


class MetadataExtractor(ABC):
    @abstractmethod
    def extract(self, content: ClipboardContent, item_id: str) -> ClipboardMetadata: ...


class BlobSink(ABC):
    @abstractmethod
    def write(self, data: bytes, extension: str) -> str:
        """Store ``data`` under a new unique name and return its path."""

    @abstractmethod
    def read(self, path: str) -> bytes | None: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...
