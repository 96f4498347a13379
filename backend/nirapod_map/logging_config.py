"""
Logging configuration for the Nirapod map controller.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGER = "nirapod_map"

# Marks the handler installed here so repeated setup calls do not stack handlers
_HANDLER_NAME = "nirapod-console"


def setup_logging(level: str = "INFO", package_level: Optional[str] = None):
    """
    Configure console logging for the controller and its service clients.

    Safe to call more than once (CLI runs, tests); the console handler is
    installed only the first time.

    Args:
        level: Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        package_level: Optional separate level for the nirapod_map loggers,
            e.g. "DEBUG" to trace supersession without httpx noise
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(_HANDLER_NAME)
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(console_handler)

    if package_level:
        logging.getLogger(PACKAGE_LOGGER).setLevel(getattr(logging, package_level.upper()))

    # Set levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Configured logger
    """
    return logging.getLogger(name)
