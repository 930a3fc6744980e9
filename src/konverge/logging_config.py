"""Process-wide logging setup for applications using Konverge."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "KONVERGE_LOG_LEVEL"

_CONFIGURED = False


def configure_logging(level: str | int | None = None) -> None:
    """Configure the root logger once, from ``level`` or KONVERGE_LOG_LEVEL.

    Stays silent when neither is set. Calls after a successful
    configuration are no-ops.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _resolve_level(level if level is not None else os.getenv(LOG_LEVEL_ENV))
    if resolved is None:
        return

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _CONFIGURED = True


def _resolve_level(raw: str | int | None) -> int | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, int):
        return raw
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else None
