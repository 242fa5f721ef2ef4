"""
Centralized logging configuration for the mentor core.

Every logger handed out by ``get_logger`` lives under the ``mentor`` namespace,
whose level follows ``config.log_level``.
"""

import logging
import sys
from typing import Optional

from .config import AppConfig

LOGGER_NAMESPACE = 'mentor'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _level_for(config: AppConfig) -> int:
    return getattr(logging, config.log_level.upper(), logging.INFO)


def setup_logging(config: Optional[AppConfig] = None) -> None:
    """
    Setup centralized logging configuration.

    Args:
        config: AppConfig instance, uses default if None
    """
    if config is None:
        from .config import config as default_config
        config = default_config

    level = _level_for(config)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the mentor namespace.

    Args:
        name: Logger name (usually __name__); names outside the namespace are nested under it

    Returns:
        Logger whose level is inherited from the mentor namespace
    """
    if name != LOGGER_NAMESPACE and not name.startswith(f'{LOGGER_NAMESPACE}.'):
        name = f'{LOGGER_NAMESPACE}.{name}'
    return logging.getLogger(name)
