"""HTTP port definition (DTO)."""

from dataclasses import dataclass, field
from datetime import datetime

from src.ports.schedule import FormPairs

__all__ = ["HttpPort"]


@dataclass
class HttpPort:
    """Outbound delivery of one scheduled item.

    Decouples the dispatch loop from HTTP implementation details.

    Attributes:
        scheduled_at: Time the item was due, used for delay metrics.
        url: Downstream endpoint URL.
        payload: Form fields to send, form-encoded, in order.
        headers: Fixed headers sent with every delivery.
    """

    scheduled_at: datetime
    url: str
    payload: FormPairs
    headers: dict[str, str] = field(default_factory=dict)
