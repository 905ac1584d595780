class ClipoError(Exception):
    """Base class for errors raised by Clipo."""


class ConfigError(ClipoError):
    """Raised when the environment holds an unusable configuration value."""


class StorageError(ClipoError):
    """Raised when a persistence backend can't be opened."""
