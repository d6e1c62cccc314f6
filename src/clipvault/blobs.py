import logging
import os
import uuid
from pathlib import Path

from clipvault.config import CONTENT_DIR
from clipvault.ports import BlobSink

logger = logging.getLogger(__name__)


class FileBlobSink(BlobSink):
    """Writes binary clipboard payloads into the content directory."""

    def __init__(self, directory: str | Path | None = None):
        self._dir = Path(directory) if directory else CONTENT_DIR
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def write(self, data: bytes, extension: str) -> str:
        if extension and not extension.startswith("."):
            extension = "." + extension
        path = self._dir / f"{uuid.uuid4().hex}{extension}"
        # Write under a temp name so a crash never leaves a truncated blob at the final path
        tmp_path = path.with_name(path.name + ".part")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
        logger.debug("Blob saved: %s (%d bytes)", path, len(data))
        return str(path)

    def read(self, path: str) -> bytes | None:
        p = Path(path)
        if not p.exists():
            logger.warning("Blob not found: %s", path)
            return None
        return p.read_bytes()

    def delete(self, path: str) -> None:
        p = Path(path).resolve()
        # Only remove files we own
        if p.parent != self._dir.resolve():
            logger.debug("Skipping blob deletion outside content dir: %s", path)
            return
        if p.exists():
            p.unlink()
