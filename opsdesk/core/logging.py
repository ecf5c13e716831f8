import logging
import sys
from typing import Optional
from opsdesk.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries whose INFO output drowns out job lifecycle messages
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "asyncssh")


def parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(settings: Optional[Settings] = None) -> int:
    """
    Configures root logging for OpsDesk and returns the level applied.

    LOG_LEVEL sets the root level; DEBUG=true forces DEBUG. Noisy libraries
    are held at LIBRARY_LOG_LEVEL, or the root level if that is higher.
    """
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.DEBUG else parse_level(settings.LOG_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Avoid duplicate handlers if setup is called multiple times
    if not root_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    library_level = max(log_level, parse_level(settings.LIBRARY_LOG_LEVEL))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger("opsdesk").info(f"Logging initialized with level: {logging.getLevelName(log_level)}")
    return log_level
