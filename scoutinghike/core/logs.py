from __future__ import annotations
import logging

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO), format=LOG_FORMAT)
    # SQL echo stays off unless asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
