import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis

from clipo.database.base import HistoryStorage
from clipo.errors import StorageError

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


class RedisStorage(HistoryStorage):
    """Slots kept as Redis string keys under ``<namespace>:<slot>``."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None, namespace: str = "clipo",
                 client: Optional[redis.Redis] = None):
        super().__init__()
        self.namespace = namespace
        self._lock_depth = 0
        self._held_lock = None
        self.client = client or redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True
        )
        self._test_connection()

    def _test_connection(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as e:
            raise StorageError(f"Redis is not reachable: {e}") from e

    def key(self, slot: str) -> str:
        return f"{self.namespace}:{slot}"

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._mutex:
            if self._lock_depth == 0:
                self._held_lock = self._acquire_lock()
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
                if self._lock_depth == 0 and self._held_lock is not None:
                    try:
                        self._held_lock.release()
                    except redis.RedisError as e:
                        logger.warning(f"Could not release the history lock: {e}")
                    self._held_lock = None

    def _acquire_lock(self):
        lock = self.client.lock(self.key("lock"), timeout=LOCK_TIMEOUT,
                                blocking_timeout=LOCK_TIMEOUT)
        try:
            if lock.acquire():
                return lock
        except redis.RedisError as e:
            logger.warning(f"Could not take the history lock: {e}")
            return None
        logger.warning(f"Timed out waiting for the history lock after {LOCK_TIMEOUT}s")
        return None

    def _read_slot(self, key: str) -> Optional[str]:
        value = self.client.get(self.key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def _write_slot(self, key: str, value: str) -> None:
        self.client.set(self.key(key), value)

    def close(self) -> None:
        self.client.close()
