"""Rich console logging for the bridge and the libraries it drives."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from eventsub_bridge.core.config import BridgeSettings

DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# logger name -> (normal level, level when the bridge runs at DEBUG)
LIBRARY_LEVELS: dict[str, tuple[int, int]] = {
    "twitchio": (logging.INFO, logging.DEBUG),
    "twitchio.eventsub": (logging.INFO, logging.DEBUG),
    "twitchio.http": (logging.WARNING, logging.DEBUG),
    "twitchio.websockets": (logging.WARNING, logging.DEBUG),
    "httpx": (logging.WARNING, logging.INFO),
    "aiohttp": (logging.WARNING, logging.WARNING),
    "aiohttp.access": (logging.WARNING, logging.INFO),
    "asyncio": (logging.ERROR, logging.ERROR),
}


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(name)-22s %(message)s", datefmt=DATE_FORMAT))
    return handler


def setup_logging(settings: BridgeSettings | None = None) -> int:
    """Install the rich root handler at ``settings.log_level``.

    Without settings (e.g. the environment failed validation) the level is
    INFO. Returns the numeric level applied.
    """
    level_name = settings.log_level if settings is not None else "INFO"
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    # force=True: aiohttp/twitchio may attach handlers before we run
    logging.basicConfig(level=level, handlers=[_rich_handler()], force=True)

    debug = level <= logging.DEBUG
    for name, (normal, verbose) in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(verbose if debug else normal)

    logging.getLogger("Bridge").debug(f"Logging configured at {logging.getLevelName(level)}")
    return level
