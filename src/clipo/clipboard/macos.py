import logging
from typing import List, Optional, Tuple

from AppKit import (
    NSPasteboard,
    NSPasteboardTypePNG,
    NSPasteboardTypeString,
    NSPasteboardTypeTIFF,
    NSWorkspace,
)
from Foundation import NSURL, NSData

from clipo.clipboard.base import ClipboardSource

logger = logging.getLogger(__name__)


class MacOSClipboard(ClipboardSource):
    """Clipboard access through ``NSPasteboard`` (pyobjc)."""

    def __init__(self) -> None:
        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def read_string(self) -> Optional[str]:
        try:
            text = self._pasteboard.stringForType_(NSPasteboardTypeString)
        except Exception:
            return None
        return str(text) if text else None

    def read_image(self) -> Optional[Tuple[bytes, str]]:
        types = self._pasteboard.types() or []
        for pb_type, image_format in ((NSPasteboardTypePNG, "png"), (NSPasteboardTypeTIFF, "tiff")):
            if pb_type not in types:
                continue
            try:
                data = self._pasteboard.dataForType_(pb_type)
            except Exception:
                continue
            if data:
                return bytes(data), image_format
        return None

    def read_file_urls(self) -> Optional[List[str]]:
        try:
            urls = self._pasteboard.readObjectsForClasses_options_([NSURL], None)
        except Exception:
            return None
        paths = [str(url.path()) for url in urls or [] if url.isFileURL()]
        return paths or None

    def write_text(self, text: str) -> bool:
        try:
            self._pasteboard.clearContents()
            return bool(self._pasteboard.setString_forType_(text, NSPasteboardTypeString))
        except Exception as e:
            logger.error(f"Failed to write text to pasteboard: {e}")
            return False

    def write_image(self, payload: bytes, image_format: str) -> bool:
        pb_type = NSPasteboardTypeTIFF if image_format == "tiff" else NSPasteboardTypePNG
        try:
            self._pasteboard.clearContents()
            ns_data = NSData.dataWithBytes_length_(payload, len(payload))
            return bool(self._pasteboard.setData_forType_(ns_data, pb_type))
        except Exception as e:
            logger.error(f"Failed to write image to pasteboard: {e}")
            return False

    def source_application(self) -> Optional[str]:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        return str(app.localizedName()) if app is not None else None
