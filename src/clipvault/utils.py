import hashlib
import struct
from pathlib import PurePath

from clipvault.config import CONTENT_DIR, DATA_DIR, PREVIEW_LENGTH
from clipvault.models import ClipboardContent

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Magic number -> file extension, checked in order
_IMAGE_SIGNATURES = (
    (PNG_SIGNATURE, ".png"),
    (b"\xff\xd8\xff", ".jpg"),
    (b"GIF87a", ".gif"),
    (b"GIF89a", ".gif"),
    (b"BM", ".bmp"),
    (b"II*\x00", ".tiff"),
    (b"MM\x00*", ".tiff"),
)


def compute_hash(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest().upper()


def content_hash(content: ClipboardContent) -> str:
    """Dedup key for a clipboard payload.

    Image bytes win over file paths, file paths over text. Path order is
    significant, so the same files copied in a different order hash apart.
    """
    if content.image_bytes is not None:
        return compute_hash(content.image_bytes)
    if content.file_paths:
        return compute_hash("|".join(content.file_paths))
    if content.text:
        return compute_hash(content.text)
    return compute_hash(b"")


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def build_preview(content: ClipboardContent, max_len: int = PREVIEW_LENGTH) -> str:
    if content.text:
        text = content.text
        if len(text) > max_len:
            text = text[:max_len] + "..."
        return normalize_whitespace(text)

    if content.file_paths:
        if len(content.file_paths) == 1:
            return PurePath(content.file_paths[0]).name
        return f"{len(content.file_paths)} files"

    return content.kind.label


def truncate_text(text: str, max_len: int) -> str:
    single_line = normalize_whitespace(text)
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    CONTENT_DIR.mkdir(parents=True, exist_ok=True)


def image_extension(data: bytes) -> str:
    for signature, ext in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return ext
    return ".png"


def get_image_dimensions(data: bytes) -> tuple[int, int]:
    """Read width and height from a PNG, GIF or BMP header; (0, 0) otherwise."""
    if len(data) < 24:
        return (0, 0)
    if data.startswith(PNG_SIGNATURE):
        width, height = struct.unpack(">II", data[16:24])
        return (width, height)
    if data[:6] in (b"GIF87a", b"GIF89a"):
        width, height = struct.unpack("<HH", data[6:10])
        return (width, height)
    if data.startswith(b"BM") and len(data) >= 26:
        width, height = struct.unpack("<ii", data[18:26])
        return (width, abs(height))
    return (0, 0)
