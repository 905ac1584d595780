from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from clipo.errors import ConfigError

STORAGE_BACKENDS = ("file", "redis")


def _to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_number(name: str, raw: Optional[str], default, cast=float):
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {raw!r}")
    return value


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RedisConfig":
        uri = os.getenv("CLIPO_REDIS_URI")
        if uri:
            return cls.from_uri(uri)

        host = os.getenv("REDIS_HOST", cls.host)
        port_raw = os.getenv("REDIS_PORT")
        db_raw = os.getenv("REDIS_DB")
        password = os.getenv("REDIS_PASSWORD") or None

        try:
            port = int(port_raw) if port_raw else cls.port
            db = int(db_raw) if db_raw else cls.db
        except ValueError as e:
            raise ConfigError(f"Invalid Redis port/db: {e}")

        return cls(host=host, port=port, db=db, password=password)

    @classmethod
    def from_uri(cls, uri: str) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ConfigError(
                f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        host = parsed.hostname or cls.host
        port = parsed.port or cls.port
        password = parsed.password or None
        db_fragment = parsed.path.lstrip("/")
        try:
            db = int(db_fragment) if db_fragment else cls.db
        except ValueError:
            raise ConfigError(f"Invalid Redis database in URI: {db_fragment!r}")

        return cls(host=host, port=port, db=db, password=password)


@dataclass(frozen=True)
class ClipoConfig:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".clipo")
    poll_interval: float = 0.5
    retention_days: int = 30
    storage: str = "file"
    log_level: str = "INFO"
    redis: RedisConfig = field(default_factory=RedisConfig)

    @property
    def image_dir(self) -> Path:
        return self.data_dir / "images"

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "ClipoConfig":
        load_dotenv(dotenv_path=env_path)

        data_dir_raw = os.getenv("CLIPO_DATA_DIR")
        data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else Path.home() / ".clipo"

        storage = os.getenv("CLIPO_STORAGE", "file").strip().lower()
        if storage not in STORAGE_BACKENDS:
            raise ConfigError(
                f"CLIPO_STORAGE must be one of {', '.join(STORAGE_BACKENDS)}, got {storage!r}")

        return cls(
            data_dir=data_dir,
            poll_interval=_to_number("CLIPO_POLL_INTERVAL", os.getenv("CLIPO_POLL_INTERVAL"), 0.5),
            retention_days=_to_number(
                "CLIPO_RETENTION_DAYS", os.getenv("CLIPO_RETENTION_DAYS"), 30, cast=int),
            storage=storage,
            log_level=os.getenv("CLIPO_LOG_LEVEL", "INFO").upper(),
            redis=RedisConfig.from_env() if storage == "redis" else RedisConfig(),
        )


@dataclass
class UserSettings:
    """Preferences persisted in the storage ``settings`` slot."""

    monitoring_enabled: bool = True
    play_sound: bool = False
    show_notifications: bool = True

    _KEYS = {
        "isMonitoringEnabled": "monitoring_enabled",
        "playSound": "play_sound",
        "showNotifications": "show_notifications",
    }

    @classmethod
    def from_mapping(cls, data: dict) -> "UserSettings":
        settings = cls()
        for key, attr in cls._KEYS.items():
            value = data.get(key)
            if isinstance(value, bool):
                setattr(settings, attr, value)
            elif isinstance(value, str):
                setattr(settings, attr, _to_bool(value, getattr(settings, attr)))
        return settings

    def to_mapping(self) -> dict:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}
