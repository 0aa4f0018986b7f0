"""
Logging initialization for applications embedding the OSS client.

The library never configures logging on import. Call ``setup_logging`` once
at startup to route structlog events through the standard library.
"""

import logging
import sys
from typing import Optional

import structlog

from .env_config import OssSettings, get_settings


def setup_logging(settings: Optional[OssSettings] = None, include_timestamp: bool = True) -> None:
    """
    Configure structured logging from settings.

    Args:
        settings: Settings providing level and output format; the global
            settings are used when omitted
        include_timestamp: Whether to include timestamps
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="ISO"))

    if settings.log_json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=settings.log_level,
        json_format=settings.log_json_format,
        debug=settings.debug,
    )
