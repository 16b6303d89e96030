"""Structured logging for selfretry diagnostics.

The engine logs through structlog loggers named under ``selfretry``. Calling
``configure_logging`` routes them to a handler on the ``selfretry`` stdlib
logger only, so the host application's root logging setup is left alone.
Without it, events go wherever the application has configured structlog.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from selfretry.config import settings

LOGGER_NAME = "selfretry"


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag events with the library name."""
    event_dict["app"] = LOGGER_NAME
    return event_dict


def add_attempt_progress(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Render attempt counters of failure events as ``attempt/max``.

    ``retry_limit`` counts re-invocations, so a context allows
    ``retry_limit + 1`` attempts in total.
    """
    attempt = event_dict.get("attempt")
    retry_limit = event_dict.get("retry_limit")
    if isinstance(attempt, int) and isinstance(retry_limit, int):
        event_dict["progress"] = f"{attempt}/{retry_limit + 1}"
    return event_dict


def configure_logging(log_level: str | None = None, environment: str | None = None) -> None:
    """Configure structlog output for the selfretry loggers.

    Args:
        log_level: Logging level name; defaults to ``settings.LOG_LEVEL``
        environment: ``production`` for JSON lines, anything else for console
            output; defaults to ``settings.ENVIRONMENT``

    Calling it again replaces the previous handler.
    """
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    level = getattr(logging, log_level.upper(), logging.INFO)
    is_production = environment.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        add_attempt_progress,
    ]

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(level)

    library_logger = logging.getLogger(LOGGER_NAME)
    library_logger.handlers.clear()
    library_logger.addHandler(handler)
    library_logger.setLevel(level)
    library_logger.propagate = False

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
    )
