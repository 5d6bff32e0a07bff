"""Logging setup: a single rich handler on the package logger."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from scan_and_fill.config import LOG_LEVEL

_configured = False


def configure_logging(level: str | int | None = None, console: Console | None = None) -> None:
    """Attach a RichHandler to the ``scan_and_fill`` logger. Safe to call twice."""
    global _configured
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("scan_and_fill")
    logger.setLevel(level)
    if _configured:
        for handler in logger.handlers:
            handler.setLevel(level)
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.handlers = [handler]
    logger.propagate = False
    _configured = True
