from clipo.clipboard.base import ClipboardSource
from clipo.clipboard.factory import get_clipboard_class, get_clipboard_source

__all__ = [
    'ClipboardSource',
    'get_clipboard_class',
    'get_clipboard_source',
]
