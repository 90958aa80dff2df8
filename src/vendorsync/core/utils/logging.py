"""Logging setup for the command line entry point.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
CLI calls :func:`configure_logging` once to attach a stderr handler.
"""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "vendorsync-stderr"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a single stderr handler to the ``vendorsync`` logger.

    Calling this more than once replaces the level but never stacks
    handlers.
    """
    logger = logging.getLogger("vendorsync")
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]
