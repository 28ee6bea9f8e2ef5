"""Logging configuration for the ``balance`` package.

``configure_logging`` is called once by entrypoints (the CLI) and attaches a
single ``StreamHandler`` to the ``"balance"`` logger. Library modules only call
``get_logger("balance.<module>")`` and never attach handlers themselves.

User-facing notifications travel on ``balance.notify`` (see
:class:`balance.notify.LoggingNotifier`). That logger carries its own level so
"Imported 3 expenses." still reaches the terminal when diagnostics are turned
down to ``WARNING``.

Environment:

- ``BALANCE_LOG_LEVEL``: package level, default ``INFO``.
- ``BALANCE_NOTIFY_LOG_LEVEL``: notification level, default ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER_NAME = "balance"
NOTIFY_LOGGER_NAME = "balance.notify"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_CONFIGURED = False


def _parse_level(level: int | str | None, *, env_var: str) -> int:
    if level is None:
        level = os.getenv(env_var)
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    notify_level: int | str | None = None,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the ``balance`` loggers once per process.

    Parameters
    ----------
    level:
        Level for the package logger; ``None`` reads ``BALANCE_LOG_LEVEL``.
    notify_level:
        Level for ``balance.notify``; ``None`` reads
        ``BALANCE_NOTIFY_LOG_LEVEL``.
    fmt:
        Format string for the handler, defaults to :data:`DEFAULT_FORMAT`.
    stream:
        Destination of the single ``StreamHandler``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    # The handler stays unfiltered; loggers decide what is emitted.
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(_parse_level(level, env_var="BALANCE_LOG_LEVEL"))
    logger.addHandler(handler)
    logger.propagate = False

    logging.getLogger(NOTIFY_LOGGER_NAME).setLevel(
        _parse_level(notify_level, env_var="BALANCE_NOTIFY_LOG_LEVEL")
    )

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; the package logger gets a ``NullHandler`` until configured."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "NOTIFY_LOGGER_NAME",
    "PACKAGE_LOGGER_NAME",
    "configure_logging",
    "get_logger",
]
