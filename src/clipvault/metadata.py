import logging
import mimetypes
from pathlib import Path

from clipvault.models import FILE_PATH_SEPARATOR, ClipboardContent, ClipboardMetadata, ContentType
from clipvault.ports import MetadataExtractor
from clipvault.utils import get_image_dimensions, image_extension

logger = logging.getLogger(__name__)

_TEXT_MIME_TYPES = {
    ContentType.HTML: "text/html",
    ContentType.RTF: "text/rtf",
}


def guess_mime_type(path_or_ext: str) -> str | None:
    if path_or_ext.startswith("."):
        path_or_ext = "file" + path_or_ext
    mime, _ = mimetypes.guess_type(path_or_ext)
    return mime


class DefaultMetadataExtractor(MetadataExtractor):
    """Derives counts, sizes, dimensions and MIME types for a payload."""

    def extract(self, content: ClipboardContent, item_id: str) -> ClipboardMetadata:
        metadata = ClipboardMetadata(item_id=item_id)

        if content.kind in (ContentType.TEXT, ContentType.HTML, ContentType.RTF):
            self._extract_text(content, metadata)
        elif content.kind == ContentType.IMAGE:
            self._extract_image(content, metadata)
        elif content.kind == ContentType.FILE_PATHS and content.file_paths:
            if len(content.file_paths) == 1:
                self._extract_file(content.file_paths[0], metadata)
            else:
                self._extract_files(content.file_paths, metadata)

        return metadata

    @staticmethod
    def _extract_text(content: ClipboardContent, metadata: ClipboardMetadata) -> None:
        if not content.text:
            return
        text = content.text
        metadata.character_count = len(text)
        metadata.word_count = len(text.split())
        metadata.line_count = text.count("\n") + 1
        metadata.mime_type = _TEXT_MIME_TYPES.get(content.kind, "text/plain")

    @staticmethod
    def _extract_image(content: ClipboardContent, metadata: ClipboardMetadata) -> None:
        if not content.image_bytes:
            metadata.mime_type = "image/unknown"
            return
        metadata.file_size = len(content.image_bytes)
        metadata.mime_type = guess_mime_type(image_extension(content.image_bytes)) or "image/unknown"
        width, height = get_image_dimensions(content.image_bytes)
        if width > 0:
            metadata.width = width
            metadata.height = height

    @staticmethod
    def _extract_file(file_path: str, metadata: ClipboardMetadata) -> None:
        path = Path(file_path)
        metadata.file_name = path.name
        metadata.file_extension = path.suffix or None
        metadata.original_path = file_path
        metadata.mime_type = guess_mime_type(path.name)
        metadata.file_count = 1
        try:
            if path.is_file():
                metadata.file_size = path.stat().st_size
        except OSError:
            logger.warning("Could not stat %s", file_path, exc_info=True)

    @staticmethod
    def _extract_files(file_paths: tuple[str, ...], metadata: ClipboardMetadata) -> None:
        metadata.file_count = len(file_paths)
        metadata.original_path = FILE_PATH_SEPARATOR.join(file_paths)
        total = 0
        for file_path in file_paths:
            try:
                path = Path(file_path)
                if path.is_file():
                    total += path.stat().st_size
            except OSError:
                logger.debug("Could not stat %s", file_path)
        metadata.file_size = total
