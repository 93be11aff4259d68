"""Logging configuration for savelink.

Core modules log through ``logging.getLogger(__name__)``; this attaches a
Rich handler to the package logger so their messages render on stderr next
to the CLI's own output.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the ``savelink`` logger.

    Args:
        verbose: Log at DEBUG instead of INFO.

    Returns:
        The package logger.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger("savelink")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    return logger
