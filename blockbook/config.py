"""
Blockbook configuration — all environment variables in one place.

Read from environment at import time. Nothing here is required; every
setting has a working default.
"""

from __future__ import annotations

import logging
import os


class Settings:
    """Application settings from environment variables."""

    # History compaction: the gap kept before an entry is its age / HISTORY_DECAY
    HISTORY_DECAY: float = float(os.environ.get("BLOCKBOOK_HISTORY_DECAY", "12"))

    # Persistence
    STORAGE_KEY: str = os.environ.get("BLOCKBOOK_STORAGE_KEY", "block")
    STORAGE_DIR: str = os.environ.get("BLOCKBOOK_STORAGE_DIR", ".blockbook")

    # Logging
    LOG_LEVEL: str = os.environ.get("BLOCKBOOK_LOG_LEVEL", "WARNING")


# Singleton instance
settings = Settings()

if settings.HISTORY_DECAY <= 0:
    raise RuntimeError("BLOCKBOOK_HISTORY_DECAY must be a positive number")


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the package logger at the configured level."""
    logger = logging.getLogger("blockbook")
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
