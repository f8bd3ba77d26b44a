"""
Logging setup.

structlog on top of stdlib logging; JSON in production, console otherwise.
"""

import logging
import sys
from typing import Optional

import structlog

from gdpr_traversal.config import Settings, settings as default_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Install the structlog processor chain."""
    settings = settings or default_settings
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    json_logs = settings.log_format == "json" or settings.environment == "production"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
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
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
