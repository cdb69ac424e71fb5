"""Logging for the ``transfer_matching`` package.

Library modules call ``get_logger("transfer_matching.<module>")`` and never
attach handlers themselves; until an entrypoint calls ``configure_logging``
the package logger carries only a ``NullHandler``.

``configure_logging`` owns a single stderr ``StreamHandler`` on the package
logger. Calling it again (for example once from the CLI callback and once from
a test) replaces that handler rather than stacking a second one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "transfer_matching"
LEVEL_ENV_VAR = "TRANSFER_MATCHING_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DEFAULT_LEVEL = logging.INFO


class _PackageHandler(logging.StreamHandler):
    """Marker subclass so reconfiguration can find the handler it installed."""


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``$TRANSFER_MATCHING_LOG_LEVEL``) into a level number.

    Accepts ints, numeric strings and level names in any case. Unknown names
    raise ``ValueError`` instead of silently falling back.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or DEFAULT_LEVEL
    if isinstance(level, int):
        return level

    text = level.strip()
    if text.isdigit():
        return int(text)
    names = logging.getLevelNamesMapping()
    try:
        return names[text.upper()]
    except KeyError:
        raise ValueError(
            f"unknown log level {level!r}; expected one of "
            + ", ".join(sorted(n for n in names if n != "NOTSET"))
        ) from None


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Send package log records to ``stream`` (stderr by default) at ``level``.

    Returns the package logger. Records do not propagate to the root logger,
    so a host application's own handlers never print them twice.
    """

    resolved = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if isinstance(h, (logging.NullHandler, _PackageHandler)):
            logger.removeHandler(h)

    # sys.stderr is looked up per call, not bound at import.
    handler = _PackageHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(resolved)
    logger.addHandler(handler)

    logger.setLevel(resolved)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
