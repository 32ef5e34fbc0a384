"""Logging setup for the command line tools."""

from __future__ import annotations

import logging
import os

ENV_LEVEL = "STREAMFIND_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure global logging. Respects STREAMFIND_LOG_LEVEL when `level` is None."""

    if level is None:
        level = os.getenv(ENV_LEVEL, "WARNING")

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s:%(name)s:%(message)s",
    )
