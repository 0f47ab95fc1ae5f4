"""Settings port definition (DTO)."""

from dataclasses import dataclass, field

__all__ = ["DEFAULT_TIMEZONE", "SettingsPort"]

DEFAULT_TIMEZONE = "Europe/Amsterdam"


@dataclass
class SettingsPort:
    """Runtime settings for the dispatch loop and the listener.

    Attributes:
        period_in_sec: Seconds between two scans of the pending store.
        http_post_endpoint: URL every due item is posted to.
        timezone: Canonical zone for parsing and due-time comparison.
        listen_host: Interface the inbound listener binds to.
        listen_port: Port the inbound listener binds to.
        http_headers: Fixed headers sent with every delivery.
        http_health_check_endpoint: Optional URL to probe before starting.
        shutdown_grace_sec: Time in-flight deliveries get to finish on stop.
    """

    period_in_sec: float
    http_post_endpoint: str
    timezone: str = DEFAULT_TIMEZONE
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    http_headers: dict[str, str] = field(default_factory=dict)
    http_health_check_endpoint: str | None = None
    shutdown_grace_sec: float = 5.0
