#!/usr/bin/env python3

import argparse
import json
import logging
import sys
from typing import Callable, List, Optional

from clipo.clipboard import ClipboardSource, get_clipboard_source
from clipo.config import ClipoConfig, UserSettings
from clipo.database import FileStorage, HistoryStorage, RedisStorage
from clipo.errors import ClipoError
from clipo.models import ClipboardItem, ItemKind
from clipo.services import ClipboardHistory, ClipboardService, sweep
from clipo.utils import FileManager

logger = logging.getLogger(__name__)

# blobs younger than this may belong to an item another process is still saving
PRUNE_GRACE_SECONDS = 60


def create_storage(config: ClipoConfig) -> HistoryStorage:
    if config.storage == "redis":
        return RedisStorage(
            host=config.redis.host,
            port=config.redis.port,
            db=config.redis.db,
            password=config.redis.password,
        )
    return FileStorage(config.data_dir)


class ClipoApp:
    """Owns the history and wires it to storage, blob files and the clipboard."""

    def __init__(
        self,
        config: ClipoConfig,
        storage: Optional[HistoryStorage] = None,
        source_factory: Callable[[], ClipboardSource] = get_clipboard_source,
    ):
        self.config = config
        self.storage = storage or create_storage(config)
        self.settings = UserSettings.from_mapping(self.storage.load_settings())
        self.history = ClipboardHistory(self.storage)
        self.file_manager = FileManager(config.image_dir)
        self._source_factory = source_factory
        self._service: Optional[ClipboardService] = None
        self.history.subscribe(self._on_item_ingested)

    @property
    def service(self) -> ClipboardService:
        # the platform clipboard is only opened when something needs it
        if self._service is None:
            self._service = ClipboardService(
                self._source_factory(),
                self.history,
                self.file_manager,
                poll_interval=self.config.poll_interval,
                monitoring_enabled=self.settings.monitoring_enabled,
                monitoring_source=self._monitoring_state,
            )
        return self._service

    def _on_item_ingested(self, item: ClipboardItem) -> None:
        if self.settings.show_notifications:
            logger.info("Clipboard item copied: %s", item.preview)
        if self.settings.play_sound:
            sys.stdout.write("\a")
            sys.stdout.flush()

    def _monitoring_state(self) -> bool:
        # `clipo monitoring on|off` from another shell only touches the settings slot
        self.settings = UserSettings.from_mapping(self.storage.load_settings())
        return self.settings.monitoring_enabled

    def set_monitoring(self, enabled: bool) -> None:
        self.settings.monitoring_enabled = enabled
        self.storage.save_settings(self.settings.to_mapping())
        if self._service is not None:
            self._service.monitoring_enabled = enabled

    def sweep(self, max_age_days: Optional[int] = None) -> int:
        if max_age_days is None:
            max_age_days = self.config.retention_days
        removed = sweep(self.history, max_age_days)
        self.prune_images()
        return removed

    def delete(self, item_id: str) -> bool:
        deleted = self.history.delete(item_id)
        if deleted:
            self.prune_images()
        return deleted

    def clear(self) -> None:
        self.history.clear_all()
        self.prune_images()

    def prune_images(self) -> int:
        with self.history.transaction():
            referenced = [item.content for item in self.history.items() if item.kind is ItemKind.IMAGE]
            return self.file_manager.prune(referenced, min_age=PRUNE_GRACE_SECONDS)

    def run(self) -> None:
        if not self.settings.monitoring_enabled:
            logger.info("Monitoring is paused; enable it with 'clipo monitoring on'")
        self.service.run_forever()

    def close(self) -> None:
        if self._service is not None:
            self._service.stop()
        self.storage.close()


def _format_item(item: ClipboardItem) -> str:
    star = "*" if item.is_favorite else " "
    stamp = item.created_at.strftime("%Y-%m-%d %H:%M")
    preview = item.preview.replace("\n", " ")
    if len(preview) > 60:
        preview = preview[:57] + "..."
    return f"{star} {item.id}  {stamp}  {item.kind.value:<5}  [{item.category}]  {preview}"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a whole number")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clipo", description="Clipboard history manager")
    parser.add_argument("--log-level", default=None, help="Logging level (default: CLIPO_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Monitor the clipboard in the foreground")

    list_parser = sub.add_parser("list", help="Show the history")
    list_parser.add_argument("--category", default="All")
    list_parser.add_argument("--search", default="")
    list_parser.add_argument("--json", action="store_true", help="Print records as JSON")

    add_parser = sub.add_parser("add", help="Add a text item")
    add_parser.add_argument("text")
    add_parser.add_argument("--category", default="General")

    for name, help_text in (("favorite", "Toggle favorite"), ("delete", "Delete an item"),
                            ("copy", "Copy an item back to the clipboard")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("id")

    edit_parser = sub.add_parser("edit", help="Replace an item's content")
    edit_parser.add_argument("id")
    edit_parser.add_argument("text")

    recat_parser = sub.add_parser("recategorize", help="Move an item to a category")
    recat_parser.add_argument("id")
    recat_parser.add_argument("category")

    sub.add_parser("categories", help="List categories")
    cat_add = sub.add_parser("category-add", help="Create a category")
    cat_add.add_argument("name")
    cat_remove = sub.add_parser("category-remove", help="Remove a category")
    cat_remove.add_argument("name")

    sweep_parser = sub.add_parser("sweep", help="Remove old non-favorite items")
    sweep_parser.add_argument("--days", type=_positive_int, default=None)

    sub.add_parser("clear", help="Remove every item")

    monitoring = sub.add_parser("monitoring", help="Pause or resume monitoring")
    monitoring.add_argument("state", choices=["on", "off"])
    return parser


def run_command(app: ClipoApp, args: argparse.Namespace) -> int:
    history = app.history
    command = args.command

    if command == "run":
        app.run()
    elif command == "list":
        items = history.view(args.category, args.search)
        if args.json:
            print(json.dumps([item.to_record() for item in items], indent=2))
        else:
            for item in items:
                print(_format_item(item))
    elif command == "add":
        item = history.add_text_item(args.text, category=args.category)
        if item is None:
            print("Nothing added (empty or same as the latest item)")
        else:
            print(item.id)
    elif command == "favorite":
        state = history.toggle_favorite(args.id)
        if state is None:
            print(f"No item {args.id}")
            return 1
        print("favorite" if state else "not favorite")
    elif command == "delete":
        if not app.delete(args.id):
            print(f"No item {args.id}")
            return 1
    elif command == "copy":
        if not app.service.copy_item(args.id):
            print(f"Could not copy {args.id}")
            return 1
    elif command == "edit":
        if history.edit(args.id, args.text) is None:
            print(f"No item {args.id}")
            return 1
    elif command == "recategorize":
        if not history.recategorize(args.id, args.category):
            print(f"Could not move {args.id} to {args.category!r}")
            return 1
    elif command == "categories":
        for name in history.categories():
            print(name)
    elif command == "category-add":
        if not history.add_category(args.name):
            print(f"Category {args.name!r} not added")
    elif command == "category-remove":
        history.remove_category(args.name)
    elif command == "sweep":
        print(f"Removed {app.sweep(args.days)} items")
    elif command == "clear":
        app.clear()
    elif command == "monitoring":
        app.set_monitoring(args.state == "on")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ClipoConfig.from_env()
    except ClipoError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(level=(args.log_level or config.log_level).upper(),
                        format="%(levelname)s: %(message)s")

    try:
        app = ClipoApp(config)
    except ClipoError as e:
        logger.error(str(e))
        return 1

    try:
        return run_command(app, args)
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
