"""Scheduled item definition (DTO)."""

from dataclasses import dataclass
from datetime import datetime, timezone

__all__ = ["FormPairs", "ScheduledItem"]

FormPairs = tuple[tuple[str, str], ...]


@dataclass(slots=True, frozen=True)
class ScheduledItem:
    """A form payload waiting for its delivery time.

    Created by the inbound listener and owned by the pending store until
    the dispatch loop takes it. Never mutated afterwards.

    Attributes:
        payload: Ordered form fields; duplicate keys are kept in order.
        scheduled_at: Timezone-aware delivery time in the canonical zone.
    """

    payload: FormPairs
    scheduled_at: datetime

    def __post_init__(self) -> None:
        if self.scheduled_at.tzinfo is None or self.scheduled_at.utcoffset() is None:
            raise ValueError("scheduled_at must be timezone-aware")

    def is_due(self, now: datetime) -> bool:
        """Return True once `now` has reached the scheduled time (inclusive).

        Compared in UTC: two datetimes sharing a zone would otherwise be
        compared by wall clock, which is ambiguous across a DST change.
        """
        return self.scheduled_at.astimezone(timezone.utc) <= now.astimezone(timezone.utc)
