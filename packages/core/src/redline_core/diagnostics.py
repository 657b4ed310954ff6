"""Process-wide diagnostic sink.

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves. The front-end owns the sink: it calls
init_logging() once at startup and dispose_logging() on exit. Components
that want an explicit sink accept a ``logger`` argument instead of
reaching for ambient state.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Top-level loggers of the three redline packages.
PACKAGE_LOGGERS = ("redline_core", "redline_store", "redline_cli")


def init_logging(verbose: bool = False, console: Console | None = None) -> logging.Handler:
    """Attach a RichHandler to the redline package loggers and return it."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    level = logging.DEBUG if verbose else logging.WARNING
    for name in PACKAGE_LOGGERS:
        pkg_logger = logging.getLogger(name)
        pkg_logger.addHandler(handler)
        pkg_logger.setLevel(level)
    return handler


def dispose_logging(handler: logging.Handler) -> None:
    """Detach a handler returned by init_logging(). Safe to call twice."""
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).removeHandler(handler)
    handler.close()
