from clipo.utils.file_manager import FileManager, normalize_format

__all__ = ["FileManager", "normalize_format"]
