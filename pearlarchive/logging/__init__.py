"""Structured logging helpers."""

from pearlarchive.logging.setup import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
