"""Inbound HTTP listener that accepts items to schedule."""

import logging
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aiohttp import web

from src.core.pending_store import PendingStore
from src.ports.schedule import FormPairs, ScheduledItem
from src.ports.settings import DEFAULT_TIMEZONE

__all__ = [
    "SCHEDULE_TIME_FIELD",
    "SCHEDULE_TIME_FORMAT",
    "create_app",
    "parse_schedule_time",
    "start_http_server",
]

logger = logging.getLogger(__name__)

SCHEDULE_TIME_FIELD = "schedule_time"
SCHEDULE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

STORE_KEY = web.AppKey("pending_store", PendingStore)
TIMEZONE_KEY = web.AppKey("timezone", str)
STOPPING_KEY: web.AppKey[Callable[[], bool]] = web.AppKey("is_stopping")


def parse_schedule_time(raw: str | None, tz: ZoneInfo) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM:SS`` wall-clock time in `tz`.

    Ambiguous times around a DST change resolve to the first occurrence.

    Raises:
        ValueError: If `raw` is missing or malformed.
    """
    if not raw:
        raise ValueError(f"missing {SCHEDULE_TIME_FIELD}")
    return datetime.strptime(raw.strip(), SCHEDULE_TIME_FORMAT).replace(tzinfo=tz)


async def schedule_request(request: web.Request) -> web.Response:
    """Handle ``POST /schedule-request``.

    The whole form body, ``schedule_time`` included, becomes the payload
    that is posted downstream once due. ``schedule_time`` may also come from
    the query string; the body wins when both are present. Once shutdown has
    started new items are refused with 503.
    """
    if request.app[STOPPING_KEY]():
        raise web.HTTPServiceUnavailable(text="Shutting down, request not scheduled")

    form = await request.post()
    payload: FormPairs = tuple((key, value) for key, value in form.items() if isinstance(value, str))

    tz_name = request.app[TIMEZONE_KEY]
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Failed to load time zone {tz_name}: {e}")
        raise web.HTTPInternalServerError(text="Internal Server Error") from e

    raw = form.get(SCHEDULE_TIME_FIELD)
    if not isinstance(raw, str):
        raw = request.query.get(SCHEDULE_TIME_FIELD)
    try:
        scheduled_at = parse_schedule_time(raw, tz)
    except ValueError as e:
        logger.info(f"Rejected schedule request from {request.remote}: {e}")
        raise web.HTTPBadRequest(text="Invalid schedule time") from e

    request.app[STORE_KEY].enqueue(ScheduledItem(payload=payload, scheduled_at=scheduled_at))
    logger.info(f"Scheduled request for {scheduled_at.isoformat()} ({len(payload)} field(s))")
    return web.Response(text="Request scheduled successfully\n")


async def health(request: web.Request) -> web.Response:
    """Handle ``GET /health`` with the current pending count."""
    return web.json_response({"status": "ok", "pending": len(request.app[STORE_KEY])})


def create_app(
    store: PendingStore,
    timezone: str = DEFAULT_TIMEZONE,
    is_stopping: Callable[[], bool] = lambda: False,
) -> web.Application:
    """Build the listener application around an existing store.

    Args:
        store: Store new items are enqueued into.
        timezone: Canonical zone used to interpret ``schedule_time``.
        is_stopping: Returns True once shutdown has started.

    Returns:
        Configured aiohttp application.
    """
    app = web.Application()
    app[STORE_KEY] = store
    app[TIMEZONE_KEY] = timezone
    app[STOPPING_KEY] = is_stopping
    app.router.add_post("/schedule-request", schedule_request)
    app.router.add_get("/health", health)
    return app


async def start_http_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start serving `app` in the background.

    Args:
        app: Application from create_app().
        host: Interface to bind.
        port: Port to bind.

    Returns:
        The runner; call ``await runner.cleanup()`` to stop serving.

    Raises:
        OSError: If the address cannot be bound.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise
    logger.info(f"Listening for schedule requests on http://{host}:{port}/schedule-request")
    return runner
