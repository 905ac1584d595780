import logging
from datetime import datetime, timedelta
from typing import Optional

from clipo.services.history import ClipboardHistory

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 30


def sweep(history: ClipboardHistory, max_age_days: float = DEFAULT_MAX_AGE_DAYS,
          now: Optional[datetime] = None) -> int:
    """Drop non-favorite items created more than ``max_age_days`` ago.

    Returns the number of removed items.
    """
    if max_age_days <= 0:
        raise ValueError("max_age_days must be > 0")

    cutoff = (now or datetime.now()) - timedelta(days=max_age_days)
    removed = history.evict(lambda item: not item.is_favorite and item.created_at < cutoff)
    if removed:
        logger.info("Retention sweep removed %d items older than %s days", len(removed), max_age_days)
    return len(removed)
