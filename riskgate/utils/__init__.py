# Utilities
from .logger import get_logger, configure_logging

__all__ = ["get_logger", "configure_logging"]
