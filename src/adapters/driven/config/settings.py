"""Configuration loading from environment variables."""

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator

from src.ports.settings import DEFAULT_TIMEZONE

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)
_http_url_adapter = TypeAdapter(HttpUrl)

DEFAULT_ENDPOINT = "https://magisrent.nl/interestlist"
DEFAULT_REFERER = "https://magisrent.nl/interestlist?building=MRX"
DEFAULT_ORIGIN = "https://magisrent.nl"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.3 Safari/605.1.15"
)


def _validate_url(v: str, what: str) -> str:
    try:
        url = _http_url_adapter.validate_python(v)
        if url.scheme not in ("http", "https"):
            raise ValueError("Only http:// and https:// endpoints allowed")
    except Exception as e:
        raise ValueError(f"Invalid {what}: {e}") from e
    return v


class Settings(BaseModel):
    """Runtime configuration for the relay service.

    Attributes:
        period_in_sec: Seconds between two scans of pending items.
        http_post_endpoint: Downstream endpoint receiving due items.
        timezone: Canonical zone for schedule times.
        listen_host: Inbound listener interface.
        listen_port: Inbound listener port.
        referer: Referer header sent downstream.
        origin: Origin header sent downstream.
        accept: Accept header sent downstream.
        user_agent: User-Agent header sent downstream.
        http_health_endpoint: Optional endpoint to probe before starting.
        shutdown_grace_sec: Time in-flight deliveries get on shutdown.
        log_level: Level of the application loggers.
    """

    period_in_sec: float = Field(1.0, gt=0, description="Interval between scans in seconds.")
    http_post_endpoint: str = Field(DEFAULT_ENDPOINT, description="Endpoint receiving due items.")
    timezone: str = Field(DEFAULT_TIMEZONE, description="Canonical IANA zone name.")
    listen_host: str = Field("0.0.0.0", description="Inbound listener interface.")
    listen_port: int = Field(8080, ge=1, le=65535, description="Inbound listener port.")
    referer: str = DEFAULT_REFERER
    origin: str = DEFAULT_ORIGIN
    accept: str = DEFAULT_ACCEPT
    user_agent: str = DEFAULT_USER_AGENT
    http_health_endpoint: str | None = Field(
        default=None,
        description=(
            "Optional HTTP endpoint to probe for health. "
            "If not set, no health check is performed."
        ),
    )
    shutdown_grace_sec: float = Field(5.0, ge=0, description="Grace period for in-flight sends.")
    log_level: str = "INFO"

    @field_validator("http_post_endpoint")
    @classmethod
    def validate_http_post_endpoint(cls, v: str) -> str:
        """Validate that the endpoint is an http(s) URL."""
        return _validate_url(v, "HTTP endpoint")

    @field_validator("http_health_endpoint")
    @classmethod
    def validate_http_health_endpoint(cls, v: str | None) -> str | None:
        """Validate that the health endpoint, if set, is an http(s) URL."""
        if v is None:
            return v
        return _validate_url(v, "health endpoint")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that zone data for `v` is available.

        Raises:
            ValueError: If the zone cannot be loaded.
        """
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def http_headers(self) -> dict[str, str]:
        """Fixed headers sent with every delivery."""
        return {
            "Referer": self.referer,
            "Origin": self.origin,
            "Accept": self.accept,
            "User-Agent": self.user_agent,
        }


def _positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError("Must be positive")
    except ValueError as e:
        raise RuntimeError(f"{name} must be a positive number (got: {raw})") from e
    return value


def load_settings() -> Settings:
    """Load and validate settings from the environment (and a .env file).

    All variables are optional:
    - DISPATCH_INTERVAL_SECONDS: Positive number, default 1.
    - HTTP_POST_ENDPOINT: Downstream http(s) URL.
    - SCHEDULE_TIMEZONE: Canonical zone, default Europe/Amsterdam.
    - LISTEN_HOST / LISTEN_PORT: Inbound listener address.
    - HTTP_REFERER, HTTP_ORIGIN, HTTP_ACCEPT, HTTP_USER_AGENT: Outbound headers.
    - HEALTH_CHECK_ENDPOINT: URL to probe before starting.
    - SHUTDOWN_GRACE_SECONDS: Non-negative number, default 5.
    - LOG_LEVEL: Application log level, default INFO.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If a numeric variable cannot be parsed.
        ValueError: If configuration is invalid.
    """
    values: dict[str, object] = {}

    if (period_raw := os.getenv("DISPATCH_INTERVAL_SECONDS")) is not None:
        values["period_in_sec"] = _positive_float("DISPATCH_INTERVAL_SECONDS", period_raw)

    if (port_raw := os.getenv("LISTEN_PORT")) is not None:
        try:
            values["listen_port"] = int(port_raw)
        except ValueError as e:
            raise RuntimeError(f"LISTEN_PORT must be an integer (got: {port_raw})") from e

    if (grace_raw := os.getenv("SHUTDOWN_GRACE_SECONDS")) is not None:
        try:
            values["shutdown_grace_sec"] = float(grace_raw)
        except ValueError as e:
            raise RuntimeError(f"SHUTDOWN_GRACE_SECONDS must be a number (got: {grace_raw})") from e

    env_fields = {
        "HTTP_POST_ENDPOINT": "http_post_endpoint",
        "SCHEDULE_TIMEZONE": "timezone",
        "LISTEN_HOST": "listen_host",
        "HTTP_REFERER": "referer",
        "HTTP_ORIGIN": "origin",
        "HTTP_ACCEPT": "accept",
        "HTTP_USER_AGENT": "user_agent",
        "HEALTH_CHECK_ENDPOINT": "http_health_endpoint",
        "LOG_LEVEL": "log_level",
    }
    for env_name, field_name in env_fields.items():
        if env_value := os.getenv(env_name):
            values[field_name] = env_value

    settings = Settings.model_validate(values)

    logger.info(
        f"Relay configured: period={settings.period_in_sec}s, "
        f"endpoint={settings.http_post_endpoint}, "
        f"zone={settings.timezone}, "
        f"listen={settings.listen_host}:{settings.listen_port}, "
        f"health_check={settings.http_health_endpoint or '<disabled>'}"
    )

    return settings
