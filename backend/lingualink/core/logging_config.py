"""Logging setup shared by services that host the lifecycle engine."""

import logging
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the platform's standard format."""
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
