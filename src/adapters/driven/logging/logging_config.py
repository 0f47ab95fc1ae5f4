"""Console logging setup for the relay."""

import logging

__all__ = ["configure_logs"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs(level: str | int = logging.INFO) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at WARNING, with one console handler.
    - Framework loggers (aiohttp, aiohttp.access, asyncio) at WARNING.
    - Application loggers (src) at `level`.

    Calling it again replaces the handler instead of stacking a new one.

    Args:
        level: Level name (e.g. "DEBUG") or number for application loggers.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_relay_handler", False):
            root.removeHandler(existing)
    handler._relay_handler = True  # type: ignore[attr-defined]
    root.setLevel(logging.WARNING)
    root.addHandler(handler)

    for name in ("aiohttp", "aiohttp.access", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(level)
