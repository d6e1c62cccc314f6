from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum

FILE_PATH_SEPARATOR = ";"


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE_PATHS = "file_paths"
    HTML = "html"
    RTF = "rtf"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ContentType.TEXT: "Text",
    ContentType.IMAGE: "Image",
    ContentType.FILE_PATHS: "FilePaths",
    ContentType.HTML: "Html",
    ContentType.RTF: "Rtf",
    ContentType.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class ClipboardContent:
    """One clipboard payload as read from the pasteboard.

    Only the fields matching ``kind`` are meaningful. ``html`` and ``rtf`` are
    rich renditions kept alongside plain text for copy-out and never take
    part in hashing.
    """

    kind: ContentType
    text: str | None = None
    image_bytes: bytes | None = None
    file_paths: tuple[str, ...] | None = None
    source_app: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    html: str | None = None
    rtf: str | None = None


@dataclass(frozen=True)
class ClipboardChangedEvent:
    content: ClipboardContent
    source_app: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ClipboardMetadata:
    item_id: str
    character_count: int | None = None
    word_count: int | None = None
    line_count: int | None = None
    file_name: str | None = None
    file_size: int | None = None
    file_extension: str | None = None
    original_path: str | None = None
    width: int | None = None
    height: int | None = None
    mime_type: str | None = None
    file_count: int | None = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "ClipboardMetadata":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ClipboardItem:
    id: str
    content_type: ContentType
    text_content: str | None
    file_path: str | None
    preview_text: str
    content_hash: str
    created_at: datetime
    last_accessed_at: datetime
    source_app: str | None = None
    html_content: str | None = None
    rtf_content: str | None = None
    group_id: str | None = None
    is_favorite: bool = False
    metadata: ClipboardMetadata | None = None

    @property
    def file_paths(self) -> tuple[str, ...]:
        """Referenced file paths in stored order; empty for image blobs."""
        if self.content_type == ContentType.IMAGE or not self.file_path:
            return ()
        return tuple(p for p in self.file_path.split(FILE_PATH_SEPARATOR) if p)
