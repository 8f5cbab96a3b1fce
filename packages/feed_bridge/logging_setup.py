"""Centralized logging configuration for the ``feed_bridge`` package.

Entrypoints (the CLI, or a host application embedding the pipeline) call
``configure_logging(...)`` once at startup. Library modules never attach
handlers themselves; they call ``get_logger("feed_bridge.<module>")`` and stay
silent until an application configures output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PKG_LOGGER_NAME = "feed_bridge"
LOG_LEVEL_ENV = "FEED_BRIDGE_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured_handler: logging.Handler | None = None


class _StderrHandler(logging.StreamHandler):
    """``StreamHandler`` bound to the current ``sys.stderr`` at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, _value) -> None:
        pass


def parse_level(level: int | str | None) -> int:
    """Resolve ``level`` (int, name, numeric string or ``None``) to a logging level.

    ``None`` falls back to ``$FEED_BRIDGE_LOG_LEVEL`` and then ``INFO``. Unknown
    names also resolve to ``INFO``.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach a single ``StreamHandler`` to the package logger.

    Repeated calls only adjust the level of the existing handler, so entrypoints
    may call this unconditionally.
    """

    global _configured_handler
    logger = logging.getLogger(PKG_LOGGER_NAME)
    resolved = parse_level(level)

    if _configured_handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        handler = logging.StreamHandler(stream) if stream is not None else _StderrHandler()
        handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
        logger.addHandler(handler)
        # Avoid double emission via the root logger.
        logger.propagate = False
        _configured_handler = handler

    _configured_handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name; the package logger gets a ``NullHandler`` until configured."""

    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if _configured_handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "parse_level"]
