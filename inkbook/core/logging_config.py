# inkbook/core/logging_config.py
import logging

from inkbook.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.

    Uses LOG_LEVEL from settings unless an explicit level is given.
    """
    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )

    # Reduce verbosity of third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
