import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from pydantic import TypeAdapter, ValidationError

from clipo.models import ClipboardItem

logger = logging.getLogger(__name__)

ITEMS_SLOT = "clipboardItems"
CATEGORIES_SLOT = "userCategories"
SETTINGS_SLOT = "settings"
HISTORY_SLOTS = (ITEMS_SLOT, CATEGORIES_SLOT)

_items_adapter = TypeAdapter(List[ClipboardItem])
_categories_adapter = TypeAdapter(List[str])


class HistoryStorage(ABC):
    """Durable key-value slots holding the serialized history.

    Subclasses only provide slot I/O. Decoding problems are logged and
    reported as empty data; write problems are logged and reported as
    ``False`` so the in-memory history stays authoritative.

    Several processes may share one backend. Writers hold :meth:`locked`
    around read-modify-write cycles and use :meth:`has_changed` to notice
    slots replaced by another writer since this instance last touched them.
    """

    def __init__(self) -> None:
        self._mutex = threading.RLock()
        self._seen: Dict[str, Optional[str]] = {}

    @abstractmethod
    def _read_slot(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def _write_slot(self, key: str, value: str) -> None:
        pass

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Exclusive access to the history slots for this process."""
        with self._mutex:
            yield

    def has_changed(self) -> bool:
        """True if the item or category slot differs from what this instance last read or wrote."""
        return any(self._safe_read(key) != self._seen.get(key) for key in HISTORY_SLOTS)

    def load(self) -> List[ClipboardItem]:
        raw = self._safe_read(ITEMS_SLOT)
        self._seen[ITEMS_SLOT] = raw
        if raw is None:
            return []
        try:
            return _items_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Discarding unreadable clipboard history: {e}")
            return []

    def save(self, items: List[ClipboardItem]) -> bool:
        data = _items_adapter.dump_json(list(items), by_alias=True).decode("utf-8")
        return self._safe_write(ITEMS_SLOT, data)

    def load_categories(self) -> List[str]:
        raw = self._safe_read(CATEGORIES_SLOT)
        self._seen[CATEGORIES_SLOT] = raw
        if raw is None:
            return []
        try:
            return _categories_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Discarding unreadable category list: {e}")
            return []

    def save_categories(self, names: List[str]) -> bool:
        return self._safe_write(CATEGORIES_SLOT, json.dumps(list(names)))

    def load_settings(self) -> Dict[str, Any]:
        raw = self._safe_read(SETTINGS_SLOT)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error(f"Discarding unreadable settings: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save_settings(self, settings: Dict[str, Any]) -> bool:
        return self._safe_write(SETTINGS_SLOT, json.dumps(dict(settings)))

    def close(self) -> None:
        pass

    def _safe_read(self, key: str) -> Optional[str]:
        try:
            return self._read_slot(key)
        except Exception as e:
            logger.error(f"Failed to read slot {key!r}: {e}")
            return None

    def _safe_write(self, key: str, value: str) -> bool:
        try:
            self._write_slot(key, value)
            self._seen[key] = value
            return True
        except Exception as e:
            logger.error(f"Failed to write slot {key!r}: {e}")
            return False

    def __enter__(self) -> "HistoryStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MemoryStorage(HistoryStorage):
    """Slots kept in a dict; used when nothing should touch the disk."""

    def __init__(self) -> None:
        super().__init__()
        self.slots: Dict[str, str] = {}

    def _read_slot(self, key: str) -> Optional[str]:
        return self.slots.get(key)

    def _write_slot(self, key: str, value: str) -> None:
        self.slots[key] = value
