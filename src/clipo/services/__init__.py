"""Service layer for Clipo."""

from clipo.services.classifier import Classification, classify
from clipo.services.clipboard_service import ClipboardService
from clipo.services.history import ClipboardHistory
from clipo.services.retention import sweep

__all__ = ["Classification", "classify", "ClipboardService", "ClipboardHistory", "sweep"]
