"""Dispatch loop that posts scheduled items once they are due."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aiohttp import ClientError, ClientResponse

from src.core.pending_store import PendingStore
from src.ports.http import HttpPort
from src.ports.schedule import ScheduledItem
from src.ports.settings import SettingsPort

__all__ = ["deliver", "dispatch_due", "get_now_time", "start_dispatch_loop"]

logger = logging.getLogger(__name__)

SendFn = Callable[[HttpPort], Awaitable[ClientResponse]]


def get_now_time(tz_name: str) -> datetime:
    """Get the current wall-clock time in the given zone.

    Args:
        tz_name: IANA zone name, e.g. ``Europe/Amsterdam``.

    Returns:
        Timezone-aware current time.

    Raises:
        ZoneInfoNotFoundError: If zone data for `tz_name` is unavailable.
    """
    return datetime.now(ZoneInfo(tz_name))


async def deliver(item: ScheduledItem, settings: SettingsPort, send_fn: SendFn) -> None:
    """Make the single delivery attempt for one item and log the outcome.

    Delivery is best-effort: whatever happens here, the item is gone.
    Failures are logged and never re-raised, so one bad item cannot affect
    the others of its batch.

    Args:
        item: Item taken from the pending store.
        settings: Runtime settings (endpoint, headers).
        send_fn: Async function performing the HTTP POST.
    """
    due = item.scheduled_at.isoformat()
    req = HttpPort(
        scheduled_at=item.scheduled_at,
        url=settings.http_post_endpoint,
        payload=item.payload,
        headers=settings.http_headers,
    )
    try:
        resp = await send_fn(req)
    except (ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Delivery of item due at {due} failed: {e!r}")
        return
    except asyncio.CancelledError:
        logger.info(f"Delivery of item due at {due} cancelled (shutdown).")
        raise
    except Exception as e:  # noqa: BLE001
        logger.error(f"Unexpected error delivering item due at {due}: {e}", exc_info=True)
        return

    if 200 <= resp.status < 300:
        logger.info(f"Delivered item due at {due} (status={resp.status})")
    else:
        logger.warning(f"Downstream rejected item due at {due} (status={resp.status}), dropped")


def dispatch_due(
    store: PendingStore,
    now: datetime,
    settings: SettingsPort,
    send_fn: SendFn,
) -> list[asyncio.Task[None]]:
    """Take every due item out of the store and start its delivery.

    The store lock is released before any send starts; each item gets its
    own task.

    Args:
        store: Pending items.
        now: Current time in the canonical zone.
        settings: Runtime settings.
        send_fn: Async function performing the HTTP POST.

    Returns:
        One task per dispatched item.
    """
    due_items = store.drain_due(now)
    if due_items:
        logger.debug(f"{len(due_items)} item(s) due at {now.isoformat()}")
    return [asyncio.create_task(deliver(item, settings, send_fn)) for item in due_items]


async def _finish_in_flight(tasks: Iterable[asyncio.Task[None]], grace_sec: float) -> None:
    """Give in-flight deliveries `grace_sec` to finish, then cancel the rest."""
    tasks = set(tasks)
    if not tasks:
        return

    _, not_done = await asyncio.wait(tasks, timeout=grace_sec)
    if not_done:
        logger.warning(f"Cancelling {len(not_done)} delivery(ies) still in flight at shutdown")
        for task in not_done:
            task.cancel()
        await asyncio.gather(*not_done, return_exceptions=True)


async def _wait_next_tick(delay: float, stop_event: asyncio.Event | None) -> None:
    """Sleep for `delay`, waking early once `stop_event` is set."""
    if stop_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


async def start_dispatch_loop(
    store: PendingStore,
    settings: SettingsPort,
    stop_fn: Callable[[], bool],
    send_fn: SendFn,
    now_fn: Callable[[], datetime] | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run the dispatch loop until `stop_fn()` returns True.

    Each tick:
    1. Sleep until the next tick (fixed cadence on the monotonic clock).
    2. Resolve "now" in the canonical zone; skip the tick if that fails.
    3. Drain the due items from the store.
    4. Start one delivery task per item (fire-and-forget).

    Args:
        store: Pending items shared with the inbound listener.
        settings: Runtime configuration (period, endpoint, zone, headers).
        stop_fn: Callable that returns True when the loop should exit.
        send_fn: Async function used to send one HTTP request.
        now_fn: Clock override; defaults to the canonical-zone wall clock.
        stop_event: Optional event behind `stop_fn`; setting it interrupts
            the sleep between ticks so shutdown does not wait a full period.

    Notes:
        - Items are never re-enqueued: one attempt per item, at or after
          its due time, whatever the outcome.
        - Latency is bounded by roughly one period past the due time.
        - On stop, in-flight deliveries get ``settings.shutdown_grace_sec``
          to finish before being cancelled.
    """
    clock = now_fn or (lambda: get_now_time(settings.timezone))
    loop = asyncio.get_running_loop()
    next_tick: float = loop.time()
    in_flight: set[asyncio.Task[None]] = set()

    logger.info(
        f"Dispatch loop started: period={settings.period_in_sec}s, "
        f"zone={settings.timezone}, endpoint={settings.http_post_endpoint}"
    )

    while not stop_fn():
        next_tick += settings.period_in_sec
        await _wait_next_tick(max(0, next_tick - loop.time()), stop_event)
        if stop_event is not None and stop_event.is_set():
            break

        try:
            now = clock()
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.warning(f"Cannot resolve time in {settings.timezone}, skipping tick: {e}")
            continue

        for task in dispatch_due(store, now, settings, send_fn):
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)

    await _finish_in_flight(in_flight, settings.shutdown_grace_sec)

    remaining = len(store)
    if remaining:
        logger.warning(f"Dispatch loop stopped with {remaining} item(s) still pending; they are lost")
    else:
        logger.info("Dispatch loop stopped.")
