"""Structured logging configuration for PinRanks.

Two renderers are supported:
- JSON renderer for service deployments (machine-readable)
- Console renderer for local runs and scripts (human-readable)

Call ``configure_logging`` once at startup; modules obtain loggers through
``get_logger(__name__)`` and log snake_case event names with keyword context.
Context bound with ``vote_context`` is attached to every event logged inside
it, including events from the stores and the rating service.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.processors import (
    JSONRenderer,
    StackInfoRenderer,
    TimeStamper,
    add_log_level,
    format_exc_info,
)


def configure_logging(cli_mode: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog with appropriate renderer.

    Args:
        cli_mode: If True, use the coloured console renderer.
                  If False, use JSON renderer for machine-readable logs.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    processors = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        StackInfoRenderer(),
        format_exc_info,
    ]

    if cli_mode:
        from structlog.dev import ConsoleRenderer
        processors.append(ConsoleRenderer(colors=True))
    else:
        processors.append(JSONRenderer(sort_keys=True))

    level = logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def vote_context(user_id: str, task_id: int) -> Iterator[None]:
    """Bind ``user_id`` and ``task_id`` to every event logged in the block.

    Binding is per asyncio task, so concurrent workers for different users
    never see each other's context.
    """
    with bound_contextvars(user_id=user_id, task_id=task_id):
        yield


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, named after the calling module when ``name`` is given."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
