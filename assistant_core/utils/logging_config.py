"""
Logging setup shared by every module of the package.
"""

import logging
import sys
from typing import Optional

from .config import AppConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# SDK and transport loggers kept at WARNING unless running at DEBUG
NOISY_LOGGERS = ('botocore', 'urllib3', 'opensearch')


def _resolve(config: Optional[AppConfig]) -> AppConfig:
    if config is not None:
        return config
    from .config import config as default_config
    return default_config


def _level(config: AppConfig) -> int:
    return getattr(logging, config.log_level.upper(), logging.INFO)


def setup_logging(config: Optional[AppConfig] = None) -> None:
    """Configure the root logger to write to stdout at the configured level.

    Args:
        config: AppConfig instance, uses the global config if None
    """
    config = _resolve(config)
    level = _level(config)

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, config: Optional[AppConfig] = None) -> logging.Logger:
    """Return the named logger (usually ``__name__``) at the configured level."""
    logger = logging.getLogger(name)
    logger.setLevel(_level(_resolve(config)))
    return logger
