from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


class ClipboardSource(ABC):
    """Access to the platform clipboard.

    Readers return ``None`` when the representation is absent or can't be
    read; writers return ``True`` on success. ``change_count`` increases
    every time the clipboard contents change.
    """

    @abstractmethod
    def change_count(self) -> int:
        pass

    @abstractmethod
    def read_string(self) -> Optional[str]:
        pass

    @abstractmethod
    def read_image(self) -> Optional[Tuple[bytes, str]]:
        pass

    @abstractmethod
    def read_file_urls(self) -> Optional[List[str]]:
        pass

    @abstractmethod
    def write_text(self, text: str) -> bool:
        pass

    @abstractmethod
    def write_image(self, payload: bytes, image_format: str) -> bool:
        pass

    def source_application(self) -> Optional[str]:
        return None
