import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Iterable, Optional, Tuple

from ulid import ULID

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "png": "png",
    "image/png": "png",
    "tiff": "tiff",
    "tif": "tiff",
    "image/tiff": "tiff",
    "jpeg": "jpeg",
    "jpg": "jpeg",
    "image/jpeg": "jpeg",
    "bmp": "bmp",
    "image/bmp": "bmp",
    "webp": "webp",
    "image/webp": "webp",
}


def normalize_format(image_format: str) -> str:
    return _EXTENSIONS.get(image_format.strip().lower().lstrip("."), "png")


class FileManager:
    """Stores clipboard image blobs under an application-owned directory."""

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.home() / ".clipo" / "images"
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save_image(self, payload: bytes, image_format: str = "png") -> Optional[Path]:
        """Write ``payload`` to a fresh ``<ULID>.<ext>`` file.

        Returns ``None`` when the write fails so the caller can drop the copy.
        """
        extension = normalize_format(image_format)
        file_path = self.base_dir / f"{ULID()}.{extension}"
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".blob-", dir=self.base_dir)
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, file_path)
            logger.info(f"Saved image to {file_path}")
            return file_path
        except OSError as e:
            logger.error(f"Failed to save image: {e}")
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return None

    def read_image(self, file_path: Path) -> Optional[Tuple[bytes, str]]:
        file_path = Path(file_path)
        try:
            payload = file_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read image {file_path}: {e}")
            return None
        return payload, normalize_format(file_path.suffix or "png")

    def prune(self, referenced: Iterable[str], min_age: float = 0) -> int:
        """Delete blobs in ``base_dir`` that no history item points at.

        Files modified less than ``min_age`` seconds ago are left alone, since
        another process may have written them and not yet recorded the item.
        """
        keep = {Path(path).resolve() for path in referenced}
        cutoff = time.time() - min_age
        removed = 0
        try:
            for file_path in self.base_dir.iterdir():
                if not file_path.is_file() or file_path.name.startswith("."):
                    continue
                if file_path.resolve() in keep:
                    continue
                if min_age and file_path.stat().st_mtime > cutoff:
                    continue
                file_path.unlink()
                removed += 1
                logger.info(f"Cleaned up unreferenced image: {file_path}")
        except OSError as e:
            logger.error(f"Cleanup error: {e}")
        return removed
