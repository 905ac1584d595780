"""Clipboard history store.

``ClipboardHistory`` owns the ordered item collection (newest first), the
user-defined categories and the active filter. Every mutation that changes
persisted state is written through the injected storage; a failed write is
logged and the in-memory state is kept. Mutations run inside
:meth:`ClipboardHistory.transaction`, so a history shared with another process
is reloaded before it is changed rather than overwritten.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from clipo.database import HistoryStorage
from clipo.models import DEFAULT_CATEGORY, ClipboardItem, ItemKind

logger = logging.getLogger(__name__)

ALL_CATEGORY = "All"
FAVORITES_CATEGORY = "Favorites"
BUILTIN_CATEGORIES = (ALL_CATEGORY, FAVORITES_CATEGORY, DEFAULT_CATEGORY)
MANUAL_SOURCE = "Clipo"

IngestListener = Callable[[ClipboardItem], None]


class ClipboardHistory:

    def __init__(self, storage: HistoryStorage, autoload: bool = True) -> None:
        self._storage = storage
        self._lock = threading.RLock()
        self._items: List[ClipboardItem] = []
        self._user_categories: List[str] = []
        self._listeners: List[IngestListener] = []
        self.selected_category = ALL_CATEGORY
        self.search_text = ""

        if autoload:
            self.load()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        items = self._storage.load()
        categories = self._storage.load_categories()
        with self._lock:
            self._items = items
            self._user_categories = sorted(
                {name for name in categories if name and name not in BUILTIN_CATEGORIES})
        logger.info("Loaded %d clipboard items", len(items))

    def _persist(self) -> None:
        if not self._storage.save(self._items):
            logger.warning("Clipboard history kept in memory only; save failed")

    def _persist_categories(self) -> None:
        self._storage.save_categories(self._user_categories)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the storage lock, reloading first if another writer changed the slots."""
        with self._lock, self._storage.locked():
            if self._storage.has_changed():
                logger.info("Clipboard history changed in storage; reloading")
                self.load()
            yield

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def subscribe(self, listener: IngestListener) -> Callable[[], None]:
        """Call ``listener`` with each newly inserted item; returns an unsubscribe hook."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, item: ClipboardItem) -> None:
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception:
                logger.exception("Error while calling ingest listener")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ClipboardItem]:
        return iter(self.items())

    def items(self) -> List[ClipboardItem]:
        with self._lock:
            return list(self._items)

    @property
    def head(self) -> Optional[ClipboardItem]:
        with self._lock:
            return self._items[0] if self._items else None

    def get(self, item_id: str) -> Optional[ClipboardItem]:
        with self._lock:
            index = self._index_of(item_id)
            return None if index is None else self._items[index]

    @property
    def user_categories(self) -> List[str]:
        with self._lock:
            return list(self._user_categories)

    def categories(self) -> List[str]:
        with self._lock:
            names = {DEFAULT_CATEGORY, FAVORITES_CATEGORY}
            names.update(self._user_categories)
            names.update(item.category for item in self._items)
            names.discard(ALL_CATEGORY)
            return [ALL_CATEGORY] + sorted(names)

    def favorite_items(self) -> List[ClipboardItem]:
        with self._lock:
            return [item for item in self._items if item.is_favorite]

    def view(self, category: str = ALL_CATEGORY, search_text: str = "") -> List[ClipboardItem]:
        """Items in ``category`` that also match ``search_text``, newest first."""
        with self._lock:
            items = list(self._items)

        if category == FAVORITES_CATEGORY:
            items = [item for item in items if item.is_favorite]
        elif category != ALL_CATEGORY:
            items = [item for item in items if item.category == category]

        if search_text:
            needle = search_text.casefold()
            items = [item for item in items if _matches(item, needle)]

        return items

    def filtered_items(self) -> List[ClipboardItem]:
        return self.view(self.selected_category, self.search_text)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def ingest(self, item: ClipboardItem) -> bool:
        """Insert ``item`` at the head unless it repeats the current head."""
        with self.transaction():
            head = self._items[0] if self._items else None
            if head is not None and head.content == item.content and head.kind == item.kind:
                logger.debug("Skipping duplicate of most recent %s item", item.kind.value)
                return False

            self._items.insert(0, item)
            self._persist()
            logger.info("Clipboard copied: %s", item.kind.value)
            self._notify(item)
            return True

    def add_text_item(self, text: str, category: str = DEFAULT_CATEGORY) -> Optional[ClipboardItem]:
        """Manually add a text entry, subject to the same duplicate check as copies."""
        if not text:
            return None
        item = ClipboardItem(
            content=text,
            kind=ItemKind.TEXT,
            category=category,
            source_application=MANUAL_SOURCE,
        )
        return item if self.ingest(item) else None

    def toggle_favorite(self, item_id: str) -> Optional[bool]:
        with self.transaction():
            index = self._index_of(item_id)
            if index is None:
                logger.debug("toggle_favorite: no item %s", item_id)
                return None
            item = self._items[index]
            item.is_favorite = not item.is_favorite
            self._persist()
            return item.is_favorite

    def delete(self, item_id: str) -> bool:
        with self.transaction():
            index = self._index_of(item_id)
            if index is None:
                logger.debug("delete: no item %s", item_id)
                return False
            del self._items[index]
            self._persist()
            return True

    def recategorize(self, item_id: str, category: str) -> bool:
        category = category.strip()
        if not category or category in (ALL_CATEGORY, FAVORITES_CATEGORY):
            logger.debug("recategorize: refusing category %r", category)
            return False

        with self.transaction():
            index = self._index_of(item_id)
            if index is None:
                logger.debug("recategorize: no item %s", item_id)
                return False
            self._items[index].category = category
            self._persist()
            return True

    def edit(self, item_id: str, content: str) -> Optional[ClipboardItem]:
        with self.transaction():
            index = self._index_of(item_id)
            if index is None:
                logger.debug("edit: no item %s", item_id)
                return None
            updated = self._items[index].with_content(content)
            self._items[index] = updated
            self._persist()
            return updated

    def clear_all(self) -> None:
        with self.transaction():
            self._items.clear()
            self._persist()

    def evict(self, predicate: Callable[[ClipboardItem], bool]) -> List[ClipboardItem]:
        """Remove every item matching ``predicate``; returns the removed items."""
        with self.transaction():
            removed = [item for item in self._items if predicate(item)]
            if removed:
                self._items = [item for item in self._items if not predicate(item)]
                self._persist()
            return removed

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def add_category(self, name: str) -> bool:
        name = name.strip()
        with self.transaction():
            if not name or name in BUILTIN_CATEGORIES or name in self._user_categories:
                return False
            self._user_categories.append(name)
            self._user_categories.sort()
            self._persist_categories()

            if self.selected_category != ALL_CATEGORY and self.selected_category not in self.categories():
                self.selected_category = ALL_CATEGORY
            return True

    def remove_category(self, name: str) -> None:
        with self.transaction():
            if name in self._user_categories:
                self._user_categories.remove(name)
                self._persist_categories()

            for item in self._items:
                if item.category == name:
                    item.category = DEFAULT_CATEGORY
            self._persist()

            if self.selected_category == name:
                self.selected_category = ALL_CATEGORY

    def _index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None


def _matches(item: ClipboardItem, needle: str) -> bool:
    return (
        needle in item.content.casefold()
        or needle in item.preview.casefold()
        or needle in item.display_title.casefold()
    )

