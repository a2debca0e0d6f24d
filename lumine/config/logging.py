"""Process-wide logging setup for the CLI and the migration tool."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that are chatty at INFO and only interesting when something breaks.
_QUIET_LOGGERS: tuple[str, ...] = ("psycopg", "psycopg.pool", "dateparser", "tzlocal")


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return value


def configure_logging(level: str | None = None) -> int:
    """Install the root handler and return the effective level.

    The level comes from `level`, then `LOG_LEVEL`, then INFO. Log output is diagnostics only and
    never part of a reply.
    """

    resolved = _resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # basicConfig is a no-op once a handler exists; the level must still follow the setting.
    logging.getLogger().setLevel(resolved)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    return resolved
