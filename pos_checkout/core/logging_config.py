"""
logging_config.py: Logging setup for the checkout service.

All modules log through ``logging.getLogger(__name__)``; this module only
installs the handlers once at application start-up:

    • console output on stdout (container friendly)
    • optional file output when ``LOG_FILE`` is set
    • a common format carrying timestamp, level and process id
    • reduced verbosity for chatty libraries (httpx, sqlalchemy)
"""

import logging
import sys

from .config import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"


def setup_logging(level=None, log_file=None):
    """
    Configures the root logger for the application.

    Args:
        level (str | None): Log level name; defaults to ``settings.log_level``.
        log_file (str | None): Optional file path; defaults to ``settings.log_file``.
            An empty value disables file output.
    """
    level = (level or settings.log_level or "INFO").upper()
    log_file = settings.log_file if log_file is None else log_file

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
