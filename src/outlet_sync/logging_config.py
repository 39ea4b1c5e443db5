"""Process-wide logging setup."""

import logging

from .config import settings


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=settings.log_format,
    )
    # Per-request access lines are noise next to the sync logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
