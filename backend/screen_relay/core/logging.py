"""Logging setup shared by the app factory and the CLI entrypoint."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once.

    Repeated calls (e.g. one app per test) only adjust the level.
    """

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    else:
        root.setLevel(level_name)

    # httpx logs every request at INFO (one per polled frame)
    logging.getLogger("httpx").setLevel(logging.WARNING)
