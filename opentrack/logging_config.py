"""
Logging setup for scripts and services embedding the delivery core.
"""

import logging

from opentrack.settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers kept at WARNING unless debugging
NOISY_LOGGERS = ("httpx", "httpcore", "google.auth", "urllib3")


def configure_logging(settings: Settings, *, force: bool = False) -> None:
    """Configure root logging from settings."""
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=force)

    if not settings.opentrack_debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
