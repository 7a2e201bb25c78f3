"""
Logging setup for the console application
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


FORMAT = "%(message)s"


def setup_logging(verbose: int = 0, console: Optional[Console] = None) -> logging.Logger:
    """
    Route hopwatch logs through rich.

    Args:
        verbose: 0 = warnings, 1 = info, 2+ = debug (probe level)
        console: Console shared with the live view

    Returns:
        The package logger
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=False,
        show_path=verbose >= 2,
    )
    handler.setFormatter(logging.Formatter(FORMAT, datefmt="[%X]"))

    logger = logging.getLogger('hopwatch')
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
