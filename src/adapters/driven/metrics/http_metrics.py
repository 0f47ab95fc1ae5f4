"""In-memory sliding-window metrics for deliveries."""

from __future__ import annotations

import statistics
from collections import deque
from dataclasses import dataclass

from src.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = ["Metrics"]


@dataclass(slots=True, frozen=True)
class _Sample:
    delay_ms: float
    failed: bool
    status_code: int


class Metrics(MetricsPort):
    """Delivery statistics over the most recent attempts.

    Tracks:
    - Average and worst delay past the scheduled time.
    - Failure rate (transport errors and non-2xx responses).
    - Last status code (0 when no response arrived).
    - Total attempts seen.

    Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        self._window: deque[_Sample] = deque(maxlen=window_size)
        self._total_seen: int = 0

    def update(self, attempt: HttpAttemptDto) -> None:
        delay_ms = max(0.0, attempt.fired_at_sec - attempt.scheduled_at_sec) * 1_000.0
        self._window.append(
            _Sample(
                delay_ms=delay_ms,
                failed=attempt.is_failed,
                status_code=attempt.status_code or 0,
            )
        )
        self._total_seen += 1

    @property
    def total_seen(self) -> int:
        return self._total_seen

    def __str__(self) -> str:
        if not self._window:
            return "Metrics: waiting for data …"

        n_window = len(self._window)
        failures = sum(1 for s in self._window if s.failed)
        fail_pct = (failures / n_window) * 100
        avg_delay = statistics.fmean(s.delay_ms for s in self._window)
        max_delay = max(s.delay_ms for s in self._window)
        last = self._window[-1]

        return (
            f"delay={avg_delay:7.1f} ms (max {max_delay:.1f}) | "
            f"status={last.status_code:3d} | "
            f"fail={fail_pct:5.1f}% | "
            f"win={n_window}/{self._window.maxlen} | "
            f"total={self._total_seen}"
        )
