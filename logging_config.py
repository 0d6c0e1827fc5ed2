"""
Logging Configuration

Centralized logging configuration for the orbit tracker.
Library modules log through the standard library; the live tracking session
uses structlog loggers that render through the same handlers.

Usage:
    from logging_config import get_logger, get_struct_logger

    logger = get_logger(__name__)
    logger.info("Element set loaded")

    log = get_struct_logger(__name__).bind(catalog_id=25544)
    log.warning("tle_fallback_used", reason="api unavailable")
"""

import logging
import sys
from typing import Optional

import structlog

# Default logging format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    json_logs: bool = False,
) -> None:
    """
    Configure logging for the entire application.

    Parameters
    ----------
    level : int
        Logging level (e.g., logging.DEBUG, logging.INFO)
    log_file : str, optional
        Path to log file. If None, logs only to console.
    json_logs : bool
        Render structlog events as JSON instead of key=value pairs.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.processors.KeyValueRenderer(key_order=["event"])
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Parameters
    ----------
    name : str
        Name of the logger (typically __name__)

    Returns
    -------
    logging.Logger
        Configured logger instance
    """
    return logging.getLogger(name)


def get_struct_logger(name: str):
    """Get a structlog logger that renders through the stdlib handlers."""
    return structlog.get_logger(name)


# Configure default logging on module import
configure_logging()
