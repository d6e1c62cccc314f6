import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

import rumps

from clipvault import __version__
from clipvault.blobs import FileBlobSink
from clipvault.config import CONTENT_DIR, DB_PATH, MENU_DISPLAY_COUNT, MENU_TITLE_LENGTH, POLL_INTERVAL
from clipvault.metadata import DefaultMetadataExtractor
from clipvault.models import ClipboardItem, ContentType
from clipvault.monitor import PasteboardMonitor
from clipvault.service import ClipboardService
from clipvault.storage import StorageManager
from clipvault.utils import ensure_dirs, truncate_text

logger = logging.getLogger(__name__)

ITEM_KEY_PREFIX = "clipvault_item_"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    icon: str | None = None
    dimensions: tuple[int, int] | None = None
    template: bool | None = None
    item_id: str | None = None


class ClipVaultApp(rumps.App):
    def __init__(self):
        super().__init__("ClipVault", title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Initialize app components. Separated for testability."""
        ensure_dirs()
        self._storage = StorageManager(DB_PATH)
        self._monitor = PasteboardMonitor()
        # Single worker: events are stored in arrival order, off the UI thread
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="clipvault-capture")
        self._service = ClipboardService(
            self._monitor,
            self._storage,
            DefaultMetadataExtractor(),
            FileBlobSink(CONTENT_DIR),
            executor=self._executor,
        )
        self._service.subscribe(self._on_item_added)
        self._item_ids: dict[str, str] = {}
        self._menu_dirty = False
        self._service.start_monitoring()
        self._build_menu()

    def _build_menu(self) -> None:
        self.menu.clear()
        self._item_ids.clear()
        self._render_menu_specs(self._compute_menu_specs())
        self._menu_dirty = False

    def _compute_menu_specs(self) -> list[MenuItemSpec | None]:
        """Compute menu item specifications. Pure logic, no rumps dependency."""
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"ClipVault v{__version__} - Clipboard History"),
            None,  # separator
        ]

        items = self._storage.get_recent(limit=MENU_DISPLAY_COUNT)
        if not items:
            specs.append(MenuItemSpec("(No clipboard history)"))
        else:
            specs.extend(self._compute_item_spec(item) for item in items)

        toggle_title = "Pause Monitoring" if self._service.is_monitoring else "Resume Monitoring"
        specs.extend([
            None,  # separator
            MenuItemSpec(toggle_title, callback=self._on_toggle_monitoring),
            None,  # separator
            MenuItemSpec("Quit ClipVault", callback=self._on_quit),
        ])
        return specs

    def _compute_item_spec(self, item: ClipboardItem) -> MenuItemSpec:
        key = f"{ITEM_KEY_PREFIX}{item.id}"
        self._item_ids[key] = item.id

        spec = MenuItemSpec(
            title=truncate_text(item.preview_text, MENU_TITLE_LENGTH),
            callback=self._on_item_click,
            item_id=item.id,
        )
        if item.content_type == ContentType.IMAGE and item.file_path:
            spec.icon = item.file_path
            spec.dimensions = (32, 32)
            spec.template = False
        return spec

    def _render_menu_specs(self, specs: list[MenuItemSpec | None]) -> None:
        self.menu = [self._render_single_spec(spec) for spec in specs]

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        kwargs = {"callback": spec.callback}
        if spec.icon:
            kwargs["icon"] = spec.icon
        if spec.dimensions:
            kwargs["dimensions"] = spec.dimensions
        if spec.template is not None:
            kwargs["template"] = spec.template

        item = rumps.MenuItem(spec.title, **kwargs)
        if spec.item_id is not None:
            item._id = f"{ITEM_KEY_PREFIX}{spec.item_id}"
        return item

    def _on_item_added(self, _item: ClipboardItem) -> None:
        # Called from the capture worker; the menu is rebuilt on the main thread
        self._menu_dirty = True

    @rumps.timer(POLL_INTERVAL)
    def _poll_clipboard(self, _sender) -> None:
        if self._monitor.poll():
            self._menu_dirty = True
        if self._menu_dirty:
            self._build_menu()

    def _on_item_click(self, sender) -> None:
        item_id = self._item_ids.get(getattr(sender, "_id", ""))
        if item_id is None:
            return

        item = self._storage.get_item(item_id)
        if item is None:
            return

        try:
            if self._service.copy_out(item):
                self._build_menu()
                rumps.notification("ClipVault", "", "Copied to clipboard", sound=False)
            else:
                rumps.notification("ClipVault", "", "Item content is no longer available", sound=False)
        except Exception:
            logger.exception("Error copying item to clipboard")

    def _on_toggle_monitoring(self, _sender) -> None:
        if self._service.is_monitoring:
            self._service.stop_monitoring()
        else:
            self._service.start_monitoring()
        self._build_menu()

    def _on_quit(self, _sender) -> None:
        self._service.dispose()
        self._executor.shutdown(wait=True)
        self._storage.close()
        rumps.quit_application()
