import logging
from datetime import datetime

from AppKit import (
    NSFilenamesPboardType,
    NSPasteboard,
    NSPasteboardTypeHTML,
    NSPasteboardTypePNG,
    NSPasteboardTypeRTF,
    NSPasteboardTypeString,
    NSPasteboardTypeTIFF,
    NSWorkspace,
)
from Foundation import NSData

from clipvault.config import MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from clipvault.models import ClipboardChangedEvent, ClipboardContent, ContentType
from clipvault.ports import ClipboardMonitor

logger = logging.getLogger(__name__)


class PasteboardMonitor(ClipboardMonitor):
    """Watches the macOS general pasteboard by polling its change count.

    ``poll()`` is driven from the app's timer; each change count bump while
    monitoring produces one ClipboardChangedEvent.
    """

    def __init__(self):
        super().__init__()
        self._pasteboard = NSPasteboard.generalPasteboard()
        self._last_change_count = self._pasteboard.changeCount()
        self._monitoring = False
        self._closed = False

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("PasteboardMonitor is closed")
        # Ignore whatever was copied while we were not watching
        self.sync_change_count()
        self._monitoring = True

    def stop(self) -> None:
        self._monitoring = False

    def close(self) -> None:
        self._monitoring = False
        self._closed = True

    def sync_change_count(self) -> None:
        self._last_change_count = self._pasteboard.changeCount()

    def poll(self) -> bool:
        if not self._monitoring:
            return False

        current_count = self._pasteboard.changeCount()
        if current_count == self._last_change_count:
            return False

        self._last_change_count = current_count

        try:
            content = self.read_content()
        except Exception:
            logger.exception("Error reading clipboard")
            return False
        if content is None:
            return False

        self._emit(ClipboardChangedEvent(
            content=content,
            source_app=content.source_app,
            timestamp=content.timestamp,
        ))
        return True

    def read_content(self) -> ClipboardContent | None:
        types = self._pasteboard.types()
        if types is None:
            return None

        source_app = self._frontmost_app()

        if NSFilenamesPboardType in types:
            content = self._read_files(source_app)
            if content:
                return content

        for img_type in (NSPasteboardTypePNG, NSPasteboardTypeTIFF):
            if img_type in types:
                content = self._read_image(img_type, source_app)
                if content:
                    return content

        return self._read_text(types, source_app)

    def _read_text(self, types, source_app: str | None) -> ClipboardContent | None:
        text = self._pasteboard.stringForType_(NSPasteboardTypeString) if NSPasteboardTypeString in types else None
        html = self._pasteboard.stringForType_(NSPasteboardTypeHTML) if NSPasteboardTypeHTML in types else None
        rtf = self._pasteboard.stringForType_(NSPasteboardTypeRTF) if NSPasteboardTypeRTF in types else None

        if text:
            kind = ContentType.TEXT
        elif html:
            kind, text = ContentType.HTML, html
        elif rtf:
            kind, text = ContentType.RTF, rtf
        else:
            return None

        if len(text.encode("utf-8")) > MAX_TEXT_SIZE:
            logger.warning("Text too large, skipping")
            return None

        return ClipboardContent(
            kind=kind,
            text=text,
            html=html,
            rtf=rtf,
            source_app=source_app,
            timestamp=datetime.now(),
        )

    def _read_image(self, img_type, source_app: str | None) -> ClipboardContent | None:
        data = self._pasteboard.dataForType_(img_type)
        if data is None:
            return None

        img_bytes = bytes(data)
        if len(img_bytes) > MAX_IMAGE_SIZE:
            logger.warning("Image too large (%d bytes), skipping", len(img_bytes))
            return None

        return ClipboardContent(
            kind=ContentType.IMAGE,
            image_bytes=img_bytes,
            source_app=source_app,
            timestamp=datetime.now(),
        )

    def _read_files(self, source_app: str | None) -> ClipboardContent | None:
        filenames = self._pasteboard.propertyListForType_(NSFilenamesPboardType)
        if not filenames:
            return None

        return ClipboardContent(
            kind=ContentType.FILE_PATHS,
            file_paths=tuple(str(f) for f in filenames),
            source_app=source_app,
            timestamp=datetime.now(),
        )

    def set_content(self, content: ClipboardContent) -> None:
        pb = self._pasteboard
        pb.clearContents()

        if content.kind == ContentType.IMAGE and content.image_bytes:
            ns_data = NSData.dataWithBytes_length_(content.image_bytes, len(content.image_bytes))
            pb.setData_forType_(ns_data, NSPasteboardTypePNG)
        elif content.file_paths:
            pb.setPropertyList_forType_(list(content.file_paths), NSFilenamesPboardType)
        else:
            if content.kind == ContentType.TEXT and content.text:
                pb.setString_forType_(content.text, NSPasteboardTypeString)
            if content.html:
                pb.setString_forType_(content.html, NSPasteboardTypeHTML)
            if content.rtf:
                pb.setString_forType_(content.rtf, NSPasteboardTypeRTF)

        # Our own write must not come back as a new capture
        self.sync_change_count()

    @staticmethod
    def _frontmost_app() -> str | None:
        try:
            app = NSWorkspace.sharedWorkspace().frontmostApplication()
            return str(app.localizedName()) if app else None
        except Exception:
            logger.debug("Could not determine source application", exc_info=True)
            return None
