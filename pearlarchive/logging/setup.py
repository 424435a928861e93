"""Structlog configuration for pearlarchive."""

import logging
import sys

import structlog

from pearlarchive.config import ArchiveConfig, LogFormat


def configure_logging(config: ArchiveConfig | None = None) -> None:
    """
    Configure structlog with appropriate processors and output format.

    Args:
        config: ArchiveConfig instance, uses defaults if None
    """
    if config is None:
        config = ArchiveConfig()

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.extend([
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=True),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # Module-level loggers must pick up later reconfiguration
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a lazy structlog logger that picks up the current configuration.

    The proxy resolves processors on every call, so loggers created at
    import time still honour a later configure_logging().

    Args:
        name: Optional logger name for context

    Returns:
        structlog logger proxy
    """
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_request_context(**values) -> None:
    """Attach values to every log line emitted in the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    """Drop request-scoped log context."""
    structlog.contextvars.clear_contextvars()
