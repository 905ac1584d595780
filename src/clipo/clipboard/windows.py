import io
import logging
import os
import time
from typing import List, Optional, Tuple

import win32clipboard as wc
import win32con
from PIL import Image, ImageGrab

from clipo.clipboard.base import ClipboardSource

logger = logging.getLogger(__name__)


class WindowsClipboard(ClipboardSource):
    """Clipboard access through ``win32clipboard`` and Pillow's ``ImageGrab``."""

    def change_count(self) -> int:
        return wc.GetClipboardSequenceNumber()

    def read_string(self) -> Optional[str]:
        if not self._open():
            return None
        try:
            if not wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                return None
            try:
                return wc.GetClipboardData(wc.CF_UNICODETEXT)
            except Exception:
                return None
        finally:
            self._close()

    def read_image(self) -> Optional[Tuple[bytes, str]]:
        try:
            clipboard_data = ImageGrab.grabclipboard()
        except Exception:
            return None

        if clipboard_data is None or not hasattr(clipboard_data, "save"):
            return None

        output = io.BytesIO()
        try:
            clipboard_data.save(output, format="PNG")
        except Exception:
            return None
        return output.getvalue(), "png"

    def read_file_urls(self) -> Optional[List[str]]:
        if not self._open():
            return None
        try:
            if not wc.IsClipboardFormatAvailable(win32con.CF_HDROP):
                return None
            try:
                files = wc.GetClipboardData(win32con.CF_HDROP)
            except Exception:
                return None
        finally:
            self._close()

        if isinstance(files, str):
            files = [files]
        paths = [os.path.normpath(path) for path in files or [] if path]
        return paths or None

    def write_text(self, text: str) -> bool:
        if not self._open():
            return False
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(wc.CF_UNICODETEXT, text)
            return True
        except Exception as e:
            logger.error(f"Failed to write text to clipboard: {e}")
            return False
        finally:
            self._close()

    def write_image(self, payload: bytes, image_format: str) -> bool:
        try:
            image = Image.open(io.BytesIO(payload))
            if image.mode == "RGBA":
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.split()[3])
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")

            output = io.BytesIO()
            image.save(output, "BMP")
            bmp_data = output.getvalue()
        except Exception as e:
            logger.error(f"Failed to convert image for clipboard: {e}")
            return False

        if len(bmp_data) <= 14 or not self._open():
            return False
        try:
            wc.EmptyClipboard()
            # CF_DIB is the bitmap without its 14-byte file header
            wc.SetClipboardData(win32con.CF_DIB, bmp_data[14:])
            return True
        except Exception as e:
            logger.error(f"Failed to write image to clipboard: {e}")
            return False
        finally:
            self._close()

    def _open(self) -> bool:
        for _ in range(3):
            try:
                wc.OpenClipboard()
                return True
            except Exception:
                time.sleep(0.05)
        return False

    def _close(self) -> None:
        try:
            wc.CloseClipboard()
        except Exception:
            pass
