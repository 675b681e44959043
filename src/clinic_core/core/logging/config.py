"""structlog configuration shared by the API and the worker."""

import logging

import structlog

from clinic_core.config import Settings, settings


def configure_logging(config: Settings | None = None) -> None:
    """Configure structlog processors and renderer.

    JSON in production, console rendering elsewhere. Request-scoped
    values bound via ``structlog.contextvars`` are merged into every event.
    """
    config = config or settings
    level = logging.getLevelNamesMapping().get(config.log_level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if config.is_production
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
