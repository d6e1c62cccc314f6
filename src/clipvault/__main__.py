import argparse
import logging
import sys

from clipvault.config import DB_PATH, LOG_PATH, MENU_DISPLAY_COUNT
from clipvault.utils import ensure_dirs, truncate_text


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def show_recent(limit: int) -> int:
    """Print the most recently accessed clipboard items."""
    from clipvault.storage import StorageManager

    with StorageManager(DB_PATH) as storage:
        items = storage.get_recent(limit=limit)

    if not items:
        print("No clipboard history.")
        return 0

    for item in items:
        stamp = item.last_accessed_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{stamp}  {item.content_type.label:<7} {truncate_text(item.preview_text, 60)}")
    return 0


def run_app(debug: bool = False) -> None:
    """Run the ClipVault menu bar application."""
    ensure_dirs()
    configure_logging(debug)

    from clipvault.app import ClipVaultApp

    app = ClipVaultApp()
    app.run()


def main():
    parser = argparse.ArgumentParser(
        description="ClipVault - Clipboard history that keeps every distinct copy once",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run (default)   Run ClipVault in the menu bar
  recent          Print recent clipboard history

Examples:
  clipvault              # Start capturing
  clipvault recent -n 5  # Show the last five items
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "recent"],
        default="run",
        help="Command to run",
    )
    parser.add_argument("-n", "--limit", type=int, default=MENU_DISPLAY_COUNT, help="Items to show with 'recent'")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    if args.command == "recent":
        ensure_dirs()
        sys.exit(show_recent(args.limit))
    else:
        run_app(args.debug)


if __name__ == "__main__":
    main()
