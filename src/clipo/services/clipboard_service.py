"""Clipboard polling service.

The service samples the clipboard's change counter on a fixed interval and,
when it moves, reads the payload (string first, then image bytes, then a
file list), classifies it and hands the resulting item to the history.
"""

import logging
import threading
from typing import Callable, Optional, Union

from clipo.clipboard import ClipboardSource
from clipo.models import (
    ClipboardItem,
    ClipboardPayload,
    FileListPayload,
    ImagePayload,
    ImageRef,
    ItemKind,
    TextPayload,
)
from clipo.services.classifier import classify
from clipo.services.history import ClipboardHistory
from clipo.utils import FileManager

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class ClipboardService:
    """Timer-driven clipboard monitor feeding a ``ClipboardHistory``."""

    def __init__(
        self,
        source: ClipboardSource,
        history: ClipboardHistory,
        file_manager: FileManager,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        monitoring_enabled: bool = True,
        monitoring_source: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Initialise the service.

        Args:
            source: Platform clipboard to sample.
            history: Store that receives new items.
            file_manager: Writes image payloads to blob files.
            poll_interval: Seconds between two samples.
            monitoring_enabled: Initial state of the pause toggle.
            monitoring_source: Consulted at the start of every tick; its
                answer replaces the pause toggle so another process can
                pause or resume a running poller.
        """
        self.source = source
        self.history = history
        self.file_manager = file_manager
        self.poll_interval = poll_interval
        self._monitoring_enabled = monitoring_enabled
        self.monitoring_source = monitoring_source
        self._lock = threading.RLock()
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._is_running = False
        self._last_change_count: Optional[int] = None

    # ---------------------------------------------------------------------
    # Lifecycle management
    # ---------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def monitoring_enabled(self) -> bool:
        return self._monitoring_enabled

    @monitoring_enabled.setter
    def monitoring_enabled(self, enabled: bool) -> None:
        with self._lock:
            if enabled == self._monitoring_enabled:
                return
            self._monitoring_enabled = enabled
            if enabled:
                # changes made while paused are not picked up
                self._last_change_count = self._sample_counter()
                logger.info("Clipboard monitoring resumed")
            else:
                logger.info("Clipboard monitoring paused")

    def start(self) -> None:
        """Start background polling of the clipboard."""
        with self._lock:
            if self._is_running:
                logger.debug("ClipboardService already running")
                return

            logger.info("Starting ClipboardService polling (interval=%ss)", self.poll_interval)
            self._last_change_count = self._sample_counter()
            self._stop_event.clear()
            self._is_running = True
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="clipo-poller", daemon=True)
            self._poll_thread.start()

    def stop(self) -> None:
        """Stop the background polling thread."""
        with self._lock:
            if not self._is_running:
                return

            logger.info("Stopping ClipboardService polling")
            self._is_running = False
            self._stop_event.set()

        # join thread outside the lock
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=max(1.0, self.poll_interval * 2))
            self._poll_thread = None

    def run_forever(self) -> None:
        """Poll in the foreground until ``stop()`` is called or Ctrl+C is pressed."""
        try:
            if not self._is_running:
                self.start()

            while not self._stop_event.wait(timeout=self.poll_interval):
                continue
        except KeyboardInterrupt:
            logger.info("ClipboardService interrupted by user")
        finally:
            self.stop()

    # ---------------------------------------------------------------------
    # Polling
    # ---------------------------------------------------------------------
    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error while polling the clipboard")
            self._stop_event.wait(self.poll_interval)

    def tick(self) -> Optional[ClipboardItem]:
        """Run one sampling cycle; returns the inserted item, if any."""
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Previous tick still running; skipping")
            return None
        try:
            if self.monitoring_source is not None:
                self.monitoring_enabled = self.monitoring_source()
            if not self._monitoring_enabled:
                return None

            count = self._sample_counter()
            if count is None:
                return None
            if self._last_change_count is None:
                self._last_change_count = count
                return None
            if count == self._last_change_count:
                return None
            self._last_change_count = count

            return self._ingest_current()
        finally:
            self._tick_lock.release()

    def _sample_counter(self) -> Optional[int]:
        try:
            return self.source.change_count()
        except Exception as e:
            logger.error("Failed to read clipboard change counter: %s", e)
            return None

    def _ingest_current(self) -> Optional[ClipboardItem]:
        payload = self.read_payload()
        if payload is None:
            logger.debug("Clipboard changed but held nothing supported")
            return None

        try:
            app_name = self.source.source_application()
        except Exception:
            app_name = None

        classifiable: Union[TextPayload, FileListPayload, ImageRef]
        if isinstance(payload, ImagePayload):
            file_path = self.file_manager.save_image(payload.data, payload.format)
            if file_path is None:
                return None
            classifiable = ImageRef(file_path, payload.format)
        else:
            classifiable = payload

        classification = classify(classifiable, source_application=app_name)
        if classification is None:
            return None

        item = classification.to_item(app_name)
        if not self.history.ingest(item):
            return None
        return item

    def read_payload(self) -> Optional[ClipboardPayload]:
        """Current clipboard payload: string, then image bytes, then file list."""
        try:
            text = self.source.read_string()
            if text:
                return TextPayload(text)

            image = self.source.read_image()
            if image is not None and image[0]:
                data, image_format = image
                return ImagePayload(data, image_format)

            paths = self.source.read_file_urls()
            if paths:
                return FileListPayload(tuple(paths))
        except Exception as e:
            logger.error("Failed to read clipboard payload: %s", e)
        return None

    # ---------------------------------------------------------------------
    # Copying items back out
    # ---------------------------------------------------------------------
    def copy_item(self, item: Union[ClipboardItem, str]) -> bool:
        """Put a history item back on the clipboard."""
        if isinstance(item, str):
            found = self.history.get(item)
            if found is None:
                logger.debug("copy_item: no item %s", item)
                return False
            item = found

        if item.kind is ItemKind.IMAGE:
            blob = self.file_manager.read_image(item.content)
            if blob is None:
                return False
            data, image_format = blob
            return self.source.write_image(data, image_format)

        return self.source.write_text(item.content)

    # ---------------------------------------------------------------------
    # Context manager helpers
    # ---------------------------------------------------------------------
    def __enter__(self) -> "ClipboardService":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
