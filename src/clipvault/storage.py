import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from clipvault.config import DB_PATH
from clipvault.models import ClipboardItem, ClipboardMetadata, ContentType
from clipvault.ports import ItemStore


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_items (
    id               TEXT PRIMARY KEY,
    content_type     TEXT NOT NULL CHECK(content_type IN ('text', 'image', 'file_paths', 'html', 'rtf', 'unknown')),
    text_content     TEXT,
    file_path        TEXT,
    preview_text     TEXT NOT NULL,
    content_hash     TEXT NOT NULL,
    created_at       TEXT NOT NULL,
    last_accessed_at TEXT NOT NULL,
    source_app       TEXT,
    html_content     TEXT,
    rtf_content      TEXT,
    group_id         TEXT,
    is_favorite      INTEGER NOT NULL DEFAULT 0,
    metadata         TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_content_hash ON clipboard_items(content_hash);
CREATE INDEX IF NOT EXISTS idx_last_accessed_at ON clipboard_items(last_accessed_at DESC);
CREATE INDEX IF NOT EXISTS idx_content_type ON clipboard_items(content_type);
"""


def _format_ts(value: datetime) -> str:
    # Fixed width so timestamps compare correctly as text
    return value.isoformat(timespec="microseconds")


class StorageManager(ItemStore):
    """SQLite-backed item store, safe to share between threads."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    def add_item(self, item: ClipboardItem) -> None:
        metadata = json.dumps(item.metadata.to_dict()) if item.metadata else None
        with self._lock:
            self._conn.execute(
                """INSERT INTO clipboard_items
                   (id, content_type, text_content, file_path, preview_text, content_hash, created_at, last_accessed_at, source_app, html_content, rtf_content, group_id, is_favorite, metadata)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    item.id,
                    item.content_type.value,
                    item.text_content,
                    item.file_path,
                    item.preview_text,
                    item.content_hash,
                    _format_ts(item.created_at),
                    _format_ts(item.last_accessed_at),
                    item.source_app,
                    item.html_content,
                    item.rtf_content,
                    item.group_id,
                    int(item.is_favorite),
                    metadata,
                ),
            )
            self._conn.commit()

    def get_item(self, item_id: str) -> ClipboardItem | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM clipboard_items WHERE id = ?", (item_id,)
            ).fetchone()
        return self._row_to_item(row) if row else None

    def find_by_hash(self, content_hash: str) -> ClipboardItem | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM clipboard_items WHERE content_hash = ?",
                (content_hash,),
            ).fetchone()
        return self._row_to_item(row) if row else None

    def get_recent(self, limit: int = 25) -> list[ClipboardItem]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM clipboard_items ORDER BY last_accessed_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def touch_last_accessed(self, item_id: str, accessed_at: datetime | None = None) -> None:
        when = _format_ts(accessed_at or datetime.now())
        with self._lock:
            self._conn.execute(
                "UPDATE clipboard_items SET last_accessed_at = ? WHERE id = ? AND last_accessed_at < ?",
                (when, item_id, when),
            )
            self._conn.commit()

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard_items").fetchone()
        return row["cnt"]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ClipboardItem:
        metadata = ClipboardMetadata.from_dict(json.loads(row["metadata"])) if row["metadata"] else None
        return ClipboardItem(
            id=row["id"],
            content_type=ContentType(row["content_type"]),
            text_content=row["text_content"],
            file_path=row["file_path"],
            preview_text=row["preview_text"],
            content_hash=row["content_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_accessed_at=datetime.fromisoformat(row["last_accessed_at"]),
            source_app=row["source_app"],
            html_content=row["html_content"],
            rtf_content=row["rtf_content"],
            group_id=row["group_id"],
            is_favorite=bool(row["is_favorite"]),
            metadata=metadata,
        )
