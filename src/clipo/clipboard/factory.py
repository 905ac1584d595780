import platform
from typing import Type

from clipo.clipboard.base import ClipboardSource


def get_clipboard_class() -> Type[ClipboardSource]:
    system = platform.system()

    if system == "Windows":
        from clipo.clipboard.windows import WindowsClipboard
        return WindowsClipboard
    elif system == "Linux":
        from clipo.clipboard.linux import LinuxClipboard
        return LinuxClipboard
    elif system == "Darwin":
        from clipo.clipboard.macos import MacOSClipboard
        return MacOSClipboard
    else:
        raise NotImplementedError(f"Platform '{system}' is not supported")


def get_clipboard_source() -> ClipboardSource:
    clipboard_class = get_clipboard_class()
    return clipboard_class()
