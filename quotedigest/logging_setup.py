"""Logging configuration for Quote Digest."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Configure the root logger once for the process.

    Args:
        level: Level name (e.g. "INFO", "WARNING").
        debug: Force DEBUG regardless of level.
    """
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)

    # Chatty third-party loggers
    logging.getLogger("apscheduler").setLevel(max(resolved, logging.WARNING))
    logging.getLogger("urllib3").setLevel(max(resolved, logging.WARNING))
