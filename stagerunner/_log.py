"""Logging setup for the ``stagerunner`` package logger.

Modules log through ``logging.getLogger(__name__)``; the CLI calls
:func:`setup_logging` once per invocation to route those records to stderr.
"""

from __future__ import annotations

import logging
import sys
import threading

_PACKAGE = "stagerunner"

_lock = threading.Lock()
_handler: logging.Handler | None = None


class TagFormatter(logging.Formatter):
    """Render records as ``[pipeline.executor] message``."""

    def __init__(self) -> None:
        super().__init__("[%(tag)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.tag = record.name.removeprefix(f"{_PACKAGE}.")
        return super().format(record)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach one stderr handler to the package logger and set its level.

    The level is WARNING, or DEBUG when *verbose*; it is reapplied on every
    call while the handler is only installed once. Records do not propagate
    to the root logger.
    """
    global _handler
    logger = logging.getLogger(_PACKAGE)
    with _lock:
        if _handler is None:
            _handler = logging.StreamHandler(sys.stderr)
            _handler.setFormatter(TagFormatter())
            logger.addHandler(_handler)
            logger.propagate = False
        logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger
