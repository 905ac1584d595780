"""Turns clipboard payloads into history item fields.

Rules are applied in priority order: URL, existing filesystem path, plain
text. File lists become ``file`` items and stored images become ``image``
items pointing at their blob file. Anything else yields ``None`` and no item
is created.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

from clipo.models import (
    ClassifiablePayload,
    ClipboardItem,
    FileListPayload,
    ImageRef,
    ItemKind,
    TextPayload,
    make_preview,
)

logger = logging.getLogger(__name__)

URL_PREFIXES = ("http://", "https://")
URL_MARKER = "://"


@dataclass(frozen=True)
class Classification:
    kind: ItemKind
    content: str
    preview: str

    def to_item(self, source_application: Optional[str] = None) -> ClipboardItem:
        return ClipboardItem(
            content=self.content,
            kind=self.kind,
            preview=self.preview,
            source_application=source_application,
        )


def looks_like_url(text: str) -> bool:
    return text.startswith(URL_PREFIXES) or URL_MARKER in text


def classify(
    payload: ClassifiablePayload,
    source_application: Optional[str] = None,
    path_exists: Callable[[str], bool] = os.path.exists,
) -> Optional[Classification]:
    if isinstance(payload, TextPayload):
        return _classify_text(payload.text, source_application, path_exists)

    if isinstance(payload, ImageRef):
        content = str(payload.path)
        return Classification(
            ItemKind.IMAGE, content, make_preview(ItemKind.IMAGE, content, source_application)
        )

    if isinstance(payload, FileListPayload):
        paths = [path for path in payload.paths if path]
        if not paths:
            return None
        content = "\n".join(paths)
        return Classification(ItemKind.FILE, content, make_preview(ItemKind.FILE, content))

    logger.debug("Dropping unsupported clipboard payload %r", type(payload).__name__)
    return None


def _classify_text(
    text: str,
    source_application: Optional[str],
    path_exists: Callable[[str], bool],
) -> Optional[Classification]:
    if not text:
        return None

    if looks_like_url(text):
        kind = ItemKind.URL
    elif ("/" in text or os.sep in text) and path_exists(text):
        kind = ItemKind.FILE
    else:
        kind = ItemKind.TEXT

    return Classification(kind, text, make_preview(kind, text, source_application))
