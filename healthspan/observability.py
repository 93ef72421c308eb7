"""Structured logging setup shared by every healthspan module."""

import logging

import structlog

from healthspan.config import LoggingConfig


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    JSON output for machines, console rendering for local development.
    """
    config = config or LoggingConfig()

    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))
    logging.getLogger().setLevel(getattr(logging, config.level))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
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
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
