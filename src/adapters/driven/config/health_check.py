"""Healthcheck validator for container orchestration."""

import logging

from src.adapters.driven.config.settings import load_settings
from src.adapters.driven.logging.logging_config import configure_logs

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Check that the relay could start with the current environment.

    Validates that every variable parses, the endpoints are http(s) URLs
    and the canonical time zone can be loaded.

    Returns:
        0 if healthy, 1 if unhealthy.
    """
    configure_logs()

    try:
        settings = load_settings()
    except Exception as exc:
        logger.error(f"Relay healthcheck FAILED: {exc}")
        return 1

    logger.info(f"Relay healthcheck OK (zone={settings.timezone})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
