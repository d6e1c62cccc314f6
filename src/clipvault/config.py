import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPVAULT_DATA_DIR", Path.home() / ".local" / "share" / "clipvault"))
DB_PATH = DATA_DIR / "clipvault.db"
CONTENT_DIR = DATA_DIR / "content"
LOG_PATH = DATA_DIR / "clipvault.log"

POLL_INTERVAL = 0.5  # seconds between pasteboard checks
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 500  # characters kept in the stored preview
MENU_TITLE_LENGTH = 60  # characters shown in menu item


def _parse_menu_display_count() -> int:
    raw = os.environ.get("CLIPVAULT_MENU_DISPLAY_COUNT")
    if raw is None:
        return 10
    try:
        value = int(raw)
    except ValueError:
        return 10
    return max(5, min(50, value))


def _parse_require_metadata() -> bool:
    raw = os.environ.get("CLIPVAULT_REQUIRE_METADATA", "")
    return raw.strip().lower() in ("1", "true", "yes", "on")


MENU_DISPLAY_COUNT = _parse_menu_display_count()
REQUIRE_METADATA = _parse_require_metadata()  # drop items whose metadata extraction fails
