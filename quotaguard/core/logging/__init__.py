"""
Logging configuration module for structured logging.

This module configures logging using structlog, with JSON output for
production and human-readable console output for development.

Every component logs through `structlog.get_logger(__name__)` with an event
name and keyword context; a caller may also hand its own bound logger to a
`QuotaGuard`.
"""

import logging

import structlog

from quotaguard.core.config.settings import settings


def configure_logging(log_level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configures the structlog pipeline.

    Sets up:
    1. ISO format timestamps
    2. Log level inclusion and filtering
    3. JSON formatting (LOG_JSON=True) or console formatting
    4. Standard library logger factory and bound loggers

    Args:
        log_level: Minimum level name, defaults to settings.LOG_LEVEL
        json_logs: Render JSON lines, defaults to settings.LOG_JSON
    """
    level_name = (log_level or settings.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    use_json = settings.LOG_JSON if json_logs is None else json_logs

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()
