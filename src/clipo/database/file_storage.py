import logging
import os
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from clipo.database.base import HistoryStorage

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".lock"


class FileStorage(HistoryStorage):
    """One JSON file per slot under ``base_dir``.

    ``locked()`` additionally holds an OS lock on ``base_dir/.lock`` so a
    second ``clipo`` process sharing the directory waits instead of
    overwriting a concurrent update.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        super().__init__()
        if base_dir is None:
            base_dir = Path.home() / ".clipo"
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock_depth = 0
        self._lock_handle: Optional[IO[bytes]] = None

    def slot_path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    @property
    def lock_path(self) -> Path:
        return self.base_dir / LOCK_FILE_NAME

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._mutex:
            if self._lock_depth == 0:
                self._lock_handle = self._acquire_file_lock()
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
                if self._lock_depth == 0 and self._lock_handle is not None:
                    self._release_file_lock(self._lock_handle)
                    self._lock_handle = None

    def _acquire_file_lock(self) -> Optional[IO[bytes]]:
        try:
            handle = open(self.lock_path, "wb")
        except OSError as e:
            logger.warning(f"Could not open lock file {self.lock_path}: {e}")
            return None
        try:
            if sys.platform == "win32":
                # LK_LOCK retries for about ten seconds before giving up
                msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
            else:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            logger.warning(f"Could not lock {self.lock_path}: {e}")
            handle.close()
            return None
        return handle

    def _release_file_lock(self, handle: IO[bytes]) -> None:
        try:
            if sys.platform == "win32":
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"Could not unlock {self.lock_path}: {e}")
        finally:
            handle.close()

    def _read_slot(self, key: str) -> Optional[str]:
        path = self.slot_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write_slot(self, key: str, value: str) -> None:
        path = self.slot_path(key)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}-", suffix=".tmp", dir=self.base_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
        logger.debug(f"Wrote {len(value)} bytes to {path}")
