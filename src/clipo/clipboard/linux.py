import hashlib
import os
import shutil
import subprocess
import threading
from typing import List, Optional, Tuple
from urllib.parse import unquote, urlparse

from clipo.clipboard.base import ClipboardSource


class LinuxClipboard(ClipboardSource):
    """Clipboard access through ``wl-paste``/``wl-copy`` or ``xclip``.

    Neither tool exposes a change counter, so one is derived: it is bumped
    whenever the fingerprint of the offered targets and the preferred
    payload differs from the previous sample.
    """

    _FILE_TARGETS = ("x-special/gnome-copied-files", "text/uri-list")
    _IMAGE_TARGETS = {
        "image/png": "png",
        "image/jpeg": "jpeg",
        "image/jpg": "jpeg",
        "image/pjpeg": "jpeg",
        "image/bmp": "bmp",
        "image/x-ms-bmp": "bmp",
        "image/tiff": "tiff",
        "image/webp": "webp",
    }
    _TEXT_TARGETS = (
        "text/plain;charset=utf-8",
        "text/plain;charset=utf8",
        "utf8_string",
        "text/plain",
        "string",
    )
    _MIME_BY_FORMAT = {
        "png": "image/png",
        "jpeg": "image/jpeg",
        "bmp": "image/bmp",
        "tiff": "image/tiff",
        "webp": "image/webp",
    }
    _FINGERPRINT_BYTES = 64 * 1024

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._last_fingerprint: Optional[str] = None

    # ------------------------------------------------------------------
    # ClipboardSource
    # ------------------------------------------------------------------
    def change_count(self) -> int:
        fingerprint = self._fingerprint()
        with self._lock:
            if fingerprint != self._last_fingerprint:
                self._last_fingerprint = fingerprint
                self._count += 1
            return self._count

    def read_string(self) -> Optional[str]:
        types = self._list_types()
        for target in self._match(types, self._TEXT_TARGETS):
            data = self._read_target(target)
            if data:
                return data.decode("utf-8", errors="ignore")
        return None

    def read_image(self) -> Optional[Tuple[bytes, str]]:
        types = self._list_types()
        for target in self._match(types, tuple(self._IMAGE_TARGETS)):
            data = self._read_target(target)
            if data:
                return data, self._IMAGE_TARGETS[target.lower()]
        return None

    def read_file_urls(self) -> Optional[List[str]]:
        types = self._list_types()
        for target in self._match(types, self._FILE_TARGETS):
            data = self._read_target(target)
            if data:
                paths = self._parse_paths(data)
                if paths:
                    return paths
        return None

    def write_text(self, text: str) -> bool:
        return self._copy(text.encode("utf-8"), None)

    def write_image(self, payload: bytes, image_format: str) -> bool:
        mime = self._MIME_BY_FORMAT.get(image_format, "image/png")
        return self._copy(payload, mime)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _backend(self) -> Optional[str]:
        if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-paste"):
            return "wayland"
        if shutil.which("xclip"):
            return "x11"
        return None

    def _list_types(self) -> List[str]:
        backend = self._backend()
        if backend == "wayland":
            command = ["wl-paste", "--list-types"]
        elif backend == "x11":
            command = ["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"]
        else:
            return []
        return self._parse_type_list(self._run_command(command, timeout=1.5))

    def _read_target(self, target: str) -> Optional[bytes]:
        backend = self._backend()
        if backend == "wayland":
            command = ["wl-paste", "--type", target]
            if target.lower().startswith("text/"):
                command.append("--no-newline")
        elif backend == "x11":
            command = ["xclip", "-selection", "clipboard", "-t", target, "-o"]
        else:
            return None
        return self._run_command(command, timeout=1.5)

    def _copy(self, data: bytes, mime: Optional[str]) -> bool:
        backend = self._backend()
        if backend == "wayland" and shutil.which("wl-copy"):
            command = ["wl-copy"]
            if mime:
                command += ["--type", mime]
        elif shutil.which("xclip"):
            command = ["xclip", "-selection", "clipboard"]
            if mime:
                command += ["-t", mime]
        else:
            return False
        return self._run_command(command, timeout=2.0, input=data) is not None

    def _fingerprint(self) -> str:
        types = self._list_types()
        digest = hashlib.md5("\n".join(types).encode("utf-8"))
        preferred = (
            self._match(types, self._FILE_TARGETS)
            + self._match(types, tuple(self._IMAGE_TARGETS))
            + self._match(types, self._TEXT_TARGETS)
        )
        if preferred:
            data = self._read_target(preferred[0]) or b""
            digest.update(data[:self._FINGERPRINT_BYTES])
            digest.update(str(len(data)).encode("ascii"))
        return digest.hexdigest()

    @staticmethod
    def _match(types: List[str], wanted: Tuple[str, ...]) -> List[str]:
        by_lower = {target.lower(): target for target in types}
        return [by_lower[name] for name in wanted if name in by_lower]

    def _parse_type_list(self, data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]

    def _parse_paths(self, data: bytes) -> List[str]:
        text = data.decode("utf-8", errors="ignore")
        lines = [line.strip() for line in text.replace(
            "\r", "\n").split("\n") if line.strip()]
        if lines and lines[0].lower() in {"copy", "cut"}:
            lines = lines[1:]

        paths: List[str] = []
        for entry in lines:
            if entry.startswith("#"):
                continue
            parsed = urlparse(entry)
            if parsed.scheme == "file":
                paths.append(unquote(parsed.path))
            elif not parsed.scheme:
                paths.append(unquote(entry))
        return paths

    def _run_command(self, command: List[str], timeout: float,
                     input: Optional[bytes] = None) -> Optional[bytes]:
        # xclip keeps its stdout open after forking, so writers must not pipe it
        output = subprocess.PIPE if input is None else subprocess.DEVNULL
        try:
            result = subprocess.run(
                command,
                input=input,
                stdout=output,
                stderr=subprocess.DEVNULL,
                check=True,
                timeout=timeout,
            )
            return result.stdout if input is None else b""
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
            return None
