"""
Context-aware JSON logger.

Every call reads the ambient ``LogContext`` at the moment it is made and
writes exactly one JSON record, newline-terminated, to standard output.

Rendering is a structlog processor chain:

    1. add_log_context      - attach the ambient LogContext
    2. assemble_log_record  - reshape into the record layout
    3. JSONRenderer         - serialize (non-JSON values fall back to repr)

Usage:
    from ctxlog import logger

    logger.info("Application started")
    logger.error("Database connection failed", exc)
"""

from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from ctxlog.config import get_output, get_settings
from ctxlog.formatters import create_log_object
from ctxlog.storage import get_log_context
from ctxlog.types import LoggingParameters, LogLevel

_UNSET: Any = object()


def add_log_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Structlog processor that attaches the ambient log context."""
    event_dict.setdefault("log_context", get_log_context())
    return event_dict


def assemble_log_record(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Structlog processor that replaces the event dict with the output record."""
    settings = get_settings()
    return create_log_object(
        event_dict["level"],
        event_dict["parameters"],
        event_dict["log_context"],
        include_stack=settings.include_stack,
        default_service=settings.service,
    )


PROCESSORS: list[Processor] = [
    add_log_context,
    assemble_log_record,
    structlog.processors.JSONRenderer(),
]


class Logger:
    """
    One method per level; each takes a value, or a message plus an error.

    Args:
        output: Stream to write to. Defaults to the configured stream,
            resolved on every call so redirected ``sys.stdout`` is honoured.
    """

    def __init__(self, output: TextIO | None = None) -> None:
        self._output = output
        self._stream: TextIO | None = None
        self._bound: Any = None

    def _wrapped(self) -> Any:
        # Rebuilt only when the resolved stream changes
        stream = self._output or get_output()
        if self._bound is None or stream is not self._stream:
            self._bound = structlog.wrap_logger(
                structlog.PrintLogger(stream),
                processors=PROCESSORS,
                wrapper_class=structlog.BoundLogger,
            ).bind()
            self._stream = stream
        return self._bound

    def _log(self, level: LogLevel, parameters: LoggingParameters) -> None:
        self._wrapped().msg(level=level.value, parameters=parameters)

    @staticmethod
    def _parameters(value: Any, error: Any) -> LoggingParameters:
        return (value,) if error is _UNSET else (value, error)

    def debug(self, value: Any, error: Any = _UNSET) -> None:
        self._log(LogLevel.DEBUG, self._parameters(value, error))

    def info(self, value: Any, error: Any = _UNSET) -> None:
        self._log(LogLevel.INFO, self._parameters(value, error))

    def warn(self, value: Any, error: Any = _UNSET) -> None:
        self._log(LogLevel.WARN, self._parameters(value, error))

    def error(self, value: Any, error: Any = _UNSET) -> None:
        self._log(LogLevel.ERROR, self._parameters(value, error))

    def verbose(self, value: Any, error: Any = _UNSET) -> None:
        self._log(LogLevel.VERBOSE, self._parameters(value, error))


logger = Logger()


def get_logger(output: TextIO | None = None) -> Logger:
    """Return the default logger, or a logger bound to ``output``."""
    if output is None:
        return logger
    return Logger(output)
