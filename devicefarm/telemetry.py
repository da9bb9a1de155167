from __future__ import annotations

import logging
import sys

import sentry_sdk
import structlog

from devicefarm.config import Settings


def configure_logging(settings: Settings) -> None:
    """Console logs on stderr; stdout is reserved for the MCP stdio channel."""
    level = logging.getLevelNamesMapping().get(settings.log_level, logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.2,
        )
