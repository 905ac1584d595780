from datetime import datetime
from typing import List, Optional, Tuple

import pytest

from clipo.clipboard import ClipboardSource
from clipo.database import MemoryStorage
from clipo.services import ClipboardHistory, ClipboardService
from clipo.utils import FileManager


class FakeClipboard(ClipboardSource):
    """In-memory clipboard whose counter moves on every copy."""

    def __init__(self) -> None:
        self.count = 0
        self.text: Optional[str] = None
        self.image: Optional[Tuple[bytes, str]] = None
        self.files: Optional[List[str]] = None
        self.app: Optional[str] = None
        self.writes: list = []

    def _set(self, text=None, image=None, files=None) -> None:
        self.text, self.image, self.files = text, image, files
        self.count += 1

    def copy_text(self, text: str) -> None:
        self._set(text=text)

    def copy_image(self, data: bytes, image_format: str = "png") -> None:
        self._set(image=(data, image_format))

    def copy_files(self, paths: List[str]) -> None:
        self._set(files=list(paths))

    def change_count(self) -> int:
        return self.count

    def read_string(self) -> Optional[str]:
        return self.text

    def read_image(self) -> Optional[Tuple[bytes, str]]:
        return self.image

    def read_file_urls(self) -> Optional[List[str]]:
        return self.files

    def write_text(self, text: str) -> bool:
        self.writes.append(("text", text))
        self.copy_text(text)
        return True

    def write_image(self, payload: bytes, image_format: str) -> bool:
        self.writes.append(("image", payload, image_format))
        self.copy_image(payload, image_format)
        return True

    def source_application(self) -> Optional[str]:
        return self.app


@pytest.fixture
def now() -> datetime:
    """Fixed wall clock for age-based tests."""
    return datetime(2026, 5, 1, 9, 30)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def history(storage) -> ClipboardHistory:
    return ClipboardHistory(storage)


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def file_manager(tmp_path) -> FileManager:
    return FileManager(tmp_path / "images")


@pytest.fixture
def service(clipboard, history, file_manager) -> ClipboardService:
    svc = ClipboardService(clipboard, history, file_manager, poll_interval=0.01)
    yield svc
    svc.stop()
