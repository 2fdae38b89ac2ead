"""
Structured logging configuration using structlog.
"""
import logging
import sys

import structlog


def setup_logging(level: str = "info", json_output: bool = False) -> None:
    """
    Configures structlog to write to stderr.

    :param level: Minimum level name, e.g. 'debug' or 'warning'.
    :param json_output: Render JSON lines instead of console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str):
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)
