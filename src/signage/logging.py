"""Structured logging for the signage display, using structlog.

Kiosks log JSON lines (one event per line, Japanese text kept readable);
development runs get the coloured console renderer. Records from the stdlib
loggers (asyncio, sounddevice) go through the same renderer, so a kiosk log
is a single uniform stream.

Every module takes its logger from get_logger(__name__) and logs snake_case
events with key/value context, never print().
"""

import logging
import sys

import structlog


def setup_logging(
    json_output: bool = False,
    log_level: str = "INFO",
    school_id: str | None = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        json_output: JSON lines (kiosk) instead of console output (dev).
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        school_id: Bound into every event when given, to tell displays apart
            in a shared log collector.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
    ]
    if json_output:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    structlog.contextvars.clear_contextvars()
    if school_id:
        structlog.contextvars.bind_contextvars(school_id=school_id)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Logger for a module; ``name`` is normally ``__name__``."""
    return structlog.get_logger(name)
