"""
Logging configuration from the loaded config.
"""

import logging
import sys

from .config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(cfg: LoggingConfig) -> None:
    """
    Configure the root logger.

    Logs go to cfg.file when set (appended), otherwise to stdout.
    """
    level = _LEVELS.get(cfg.level, logging.INFO)
    if cfg.file:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=cfg.file, filemode="a", force=True)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)
