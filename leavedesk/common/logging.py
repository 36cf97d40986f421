"""Logging setup shared by the API process and CLI entry points."""

from __future__ import annotations

import logging

from leavedesk.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once from ``settings.LOG_LEVEL``."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
    # SQL echo is controlled by the engine; keep the logger itself quiet.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
