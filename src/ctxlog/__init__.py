"""
ctxlog - Structured JSON logging with ambient context.

This package provides:
- An immutable LogContext value (tags, category, ids, metadata, source records)
- Ambient context propagation via contextvars, safe across asyncio tasks
- A logger that merges the active context into every JSON record

Usage:
    from ctxlog import LogContext, logger, with_log_context

    ctx = LogContext.create(session_id="req-123", tags=["api"])

    with_log_context(ctx, lambda: logger.info("Processing request"))

    async def handle():
        logger.info("inside the request")

    await with_log_context(ctx, handle)
"""

from ctxlog.config import LoggerSettings, configure_logging, get_settings, is_configured, reset_logging
from ctxlog.context import EMPTY_CONTEXT, LogContext, SourceRecordIdentifier
from ctxlog.formatters import create_log_object, extract_message, extract_stack
from ctxlog.logger import Logger, get_logger, logger
from ctxlog.storage import bind_log_context, get_log_context, log_context, with_log_context
from ctxlog.types import LOG_LEVELS, LoggingParameters, LogLevel

__version__ = "0.1.0"

__all__ = [
    # Context
    "LogContext",
    "SourceRecordIdentifier",
    "EMPTY_CONTEXT",
    # Storage
    "get_log_context",
    "with_log_context",
    "log_context",
    "bind_log_context",
    # Logger
    "Logger",
    "logger",
    "get_logger",
    # Formatting
    "create_log_object",
    "extract_message",
    "extract_stack",
    # Configuration
    "LoggerSettings",
    "configure_logging",
    "get_settings",
    "is_configured",
    "reset_logging",
    # Types
    "LogLevel",
    "LOG_LEVELS",
    "LoggingParameters",
]
