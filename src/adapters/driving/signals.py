"""Signal handling for graceful shutdown."""

import asyncio
import logging
import signal
from collections.abc import Iterable

__all__ = ["make_stop_on_sigterm"]

logger = logging.getLogger(__name__)


def make_stop_on_sigterm(
    signals: Iterable[signal.Signals] = (signal.SIGTERM, signal.SIGINT),
) -> asyncio.Event:
    """Create the stop event shared by the dispatch loop and the listener.

    The first received signal sets the event. The dispatch loop wakes from
    its sleep, lets in-flight deliveries finish and returns; meanwhile the
    listener refuses new items.

    Args:
        signals: Signals that request a shutdown.

    Returns:
        Event that is set once one of `signals` has been received.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        if stop.is_set():
            logger.info(f"{sig.name} received again, shutdown already in progress")
            return
        logger.info(f"{sig.name} received, stopping dispatch loop...")
        stop.set()

    for sig in signals:
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop
