"""Logging module with structured logging and request tracking."""

from gatekeeper.core.logging.middleware import RequestLoggingMiddleware
from gatekeeper.core.logging.setup import configure_logging


__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
]
