"""
Structured logging configuration

Usage:
    from utils.logging import configure_from_env, get_logger

    configure_from_env()
    logger = get_logger(__name__)
    logger.info("Loaded staging table", extra={"target": "customers", "rows": 1000})
"""

from .config import configure_from_env, get_logger, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
]
