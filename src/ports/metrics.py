"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["HttpAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class HttpAttemptDto:
    """Immutable record of one delivery attempt.

    Attributes:
        scheduled_at_sec: Epoch seconds the item was due.
        fired_at_sec: Epoch seconds the request left the process.
        is_failed: True on transport error or non-2xx response.
        status_code: HTTP status code when a response arrived; None otherwise.
    """

    scheduled_at_sec: float
    fired_at_sec: float
    is_failed: bool = False
    status_code: int | None = None


class MetricsPort(Protocol):
    """Interface for recording delivery attempts.

    Implementations must be non-blocking; they are called from the event
    loop after every attempt.
    """

    def update(self, attempt: HttpAttemptDto, /) -> None:
        """Record a finished delivery attempt."""
        ...

    def __str__(self) -> str:
        """Return a one-line summary for the logs."""
        ...
