from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union


@dataclass(frozen=True)
class TextPayload:
    text: str


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes as read from the clipboard, not yet on disk."""

    data: bytes
    format: str


@dataclass(frozen=True)
class FileListPayload:
    paths: Tuple[str, ...]


@dataclass(frozen=True)
class ImageRef:
    """Image bytes that were written to a blob file."""

    path: Path
    format: str


ClipboardPayload = Union[TextPayload, ImagePayload, FileListPayload]
ClassifiablePayload = Union[TextPayload, FileListPayload, ImageRef]
