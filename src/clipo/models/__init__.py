from clipo.models.clipboard_item import (
    DEFAULT_CATEGORY,
    PREVIEW_LENGTH,
    ClipboardItem,
    ItemKind,
    make_preview,
    new_item_id,
)
from clipo.models.payload import (
    ClassifiablePayload,
    ClipboardPayload,
    FileListPayload,
    ImagePayload,
    ImageRef,
    TextPayload,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "PREVIEW_LENGTH",
    "ClipboardItem",
    "ItemKind",
    "make_preview",
    "new_item_id",
    "ClassifiablePayload",
    "ClipboardPayload",
    "FileListPayload",
    "ImagePayload",
    "ImageRef",
    "TextPayload",
]
