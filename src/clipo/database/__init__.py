"""
Persistence backends for the clipboard history.
"""

from clipo.database.base import HistoryStorage, MemoryStorage
from clipo.database.file_storage import FileStorage
from clipo.database.redis_storage import RedisStorage

__all__ = [
    'HistoryStorage',
    'MemoryStorage',
    'FileStorage',
    'RedisStorage',
]
