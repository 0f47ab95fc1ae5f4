"""Application entrypoint."""

import asyncio
import logging

from src.adapters.driven.config.settings import load_settings
from src.adapters.driven.http.client import HttpClient
from src.adapters.driven.logging.logging_config import configure_logs
from src.adapters.driven.metrics.http_metrics import Metrics
from src.adapters.driving.http_server import create_app, start_http_server
from src.adapters.driving.signals import make_stop_on_sigterm
from src.core.dispatch_loop import start_dispatch_loop
from src.core.pending_store import PendingStore
from src.ports.settings import SettingsPort

__all__ = ["main"]

logger = logging.getLogger(__name__)


async def main() -> None:
    """Start the schedule relay service.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Optionally probe the downstream endpoint.
    4. Start the inbound listener (bind failure is fatal).
    5. Run the dispatch loop until SIGTERM/SIGINT; from then on the
       listener answers 503 while in-flight deliveries finish.
    6. Stop the listener.
    """
    configure_logs()
    logger.info("Starting schedule relay...")

    try:
        config = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check DISPATCH_INTERVAL_SECONDS, HTTP_POST_ENDPOINT, "
            "SCHEDULE_TIMEZONE and LISTEN_PORT.",
            exc,
        )
        return

    configure_logs(config.log_level)

    settings_port = SettingsPort(
        period_in_sec=config.period_in_sec,
        http_post_endpoint=config.http_post_endpoint,
        timezone=config.timezone,
        listen_host=config.listen_host,
        listen_port=config.listen_port,
        http_headers=config.http_headers,
        http_health_check_endpoint=config.http_health_endpoint,
        shutdown_grace_sec=config.shutdown_grace_sec,
    )

    store = PendingStore()
    metrics = Metrics()
    http_client = HttpClient(metrics=metrics)

    async with http_client as http:
        if not await optional_endpoint_health_check(settings_port, http):
            return

        stop = make_stop_on_sigterm()

        try:
            runner = await start_http_server(
                create_app(store, settings_port.timezone, is_stopping=stop.is_set),
                settings_port.listen_host,
                settings_port.listen_port,
            )
        except OSError as e:
            logger.error(
                f"Cannot listen on {settings_port.listen_host}:{settings_port.listen_port}: {e}"
            )
            return

        try:
            await start_dispatch_loop(
                store=store,
                settings=settings_port,
                stop_fn=stop.is_set,
                send_fn=http.send,
                stop_event=stop,
            )
        except Exception as e:
            logger.error(f"Unhandled exception in dispatch loop: {e}", exc_info=True)
        finally:
            await runner.cleanup()

        logger.info("Schedule relay stopped.")


async def optional_endpoint_health_check(settings_port: SettingsPort, http: HttpClient) -> bool:
    """Probe the downstream before accepting work.

    Only runs if HEALTH_CHECK_ENDPOINT is configured.

    Args:
        settings_port: Runtime settings.
        http: HTTP client for probing.

    Returns:
        True if healthy or check disabled, False if check failed.
    """
    if settings_port.http_health_check_endpoint:
        logger.info(f"Performing health check on {settings_port.http_health_check_endpoint}...")
        if not await http.probe(url=settings_port.http_health_check_endpoint):
            logger.error(
                f"Health check failed for {settings_port.http_health_check_endpoint}, "
                "aborting startup"
            )
            return False

        logger.info("Health check passed, starting relay...")
    return True


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
