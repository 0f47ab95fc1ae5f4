"""In-memory store of items waiting for their delivery time."""

import logging
import threading
from datetime import datetime

from src.ports.schedule import ScheduledItem

__all__ = ["PendingStore"]

logger = logging.getLogger(__name__)


class PendingStore:
    """Lock-guarded list of scheduled items.

    Shared between the inbound listener (producer) and the dispatch loop
    (consumer). Every read or mutation of the list happens under one lock,
    and the lock is never held across network I/O or an ``await``.

    Not persistent: the content is lost when the process exits.
    """

    def __init__(self) -> None:
        self._items: list[ScheduledItem] = []
        self._lock = threading.Lock()

    def enqueue(self, item: ScheduledItem) -> None:
        """Append an item. Past schedule times are due on the next scan.

        Args:
            item: Item to hold until it is due.
        """
        with self._lock:
            self._items.append(item)
            size = len(self._items)
        logger.debug(f"Enqueued item due at {item.scheduled_at.isoformat()} (pending={size})")

    def drain_due(self, now: datetime) -> list[ScheduledItem]:
        """Remove and return every item due at `now`.

        Partitioning and replacing the list happen in a single lock
        acquisition, so a concurrent enqueue either lands before the scan
        (and may be returned) or after it (and stays pending).

        Args:
            now: Timezone-aware current time.

        Returns:
            Items with ``scheduled_at <= now``; their order is not significant.

        Raises:
            ValueError: If `now` is naive.
        """
        if now.tzinfo is None or now.utcoffset() is None:
            raise ValueError("now must be timezone-aware")

        with self._lock:
            due: list[ScheduledItem] = []
            remaining: list[ScheduledItem] = []
            for item in self._items:
                (due if item.is_due(now) else remaining).append(item)
            self._items = remaining
        return due

    def snapshot(self) -> list[ScheduledItem]:
        """Return a copy of the pending items in insertion order."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
