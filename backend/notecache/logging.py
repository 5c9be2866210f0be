"""
Logging configuration for notecache.
"""

import logging
import sys

from notecache.config import settings


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure application logging.

    :param level: Log level name, defaults to ``settings.LOG_LEVEL``
    :type level: str | None
    :return: Root logger for the notecache package
    :rtype: logging.Logger
    """
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    return logging.getLogger('notecache')


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    :param name: The module name for the logger
    :type name: str
    :return: Logger instance for the specified module
    :rtype: logging.Logger
    """
    return logging.getLogger(f'notecache.{name}')
