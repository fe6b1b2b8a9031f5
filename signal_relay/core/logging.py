# signal_relay/core/logging.py

import logging
import sys

from signal_relay.core.config import settings


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging() -> None:
    """
    Install one stdout handler on the root logger at LOG_LEVEL.

    Connect, join, leave and disconnect are logged at INFO; per-relay
    routing lines only show up at DEBUG. HTTP access lines are held to
    WARNING since the WebSocket upgrade is the only request the relay
    serves.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    # Uvicorn may have installed handlers already
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)
