"""Logging setup for the patchbay CLI and scripts."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "PATCHBAY_LOG_LEVEL"


def resolve_log_level(level: int | str | None = None) -> int:
    """Return a numeric level from an int, a level name or ``PATCHBAY_LOG_LEVEL``."""

    raw = level if level is not None else os.getenv(LOG_LEVEL_ENV)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return logging.INFO
    if isinstance(raw, int):
        return raw
    value = logging.getLevelNamesMapping().get(raw.strip().upper())
    if value is None:
        raise ConfigurationError(f"Unknown log level {raw!r}", setting=LOG_LEVEL_ENV)
    return value


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse format suitable for CLI output.

    Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
