"""
Logging configuration for the login risk engine.

All modules log through named loggers under the "riskgate" namespace
(riskgate.aggregator, riskgate.api, riskgate.ledger, ...); configuring
the root "riskgate" logger here covers all of them.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "riskgate"


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (defaults to 'riskgate')
        level: Log level name (defaults to INFO)

    Returns:
        Configured logger instance
    """
    logger_name = name or ROOT_LOGGER_NAME
    logger = logging.getLogger(logger_name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level or logging.INFO)
    return logger


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package root logger once at startup."""
    return get_logger(ROOT_LOGGER_NAME, level)
