"""Level taxonomy and shared type aliases."""

from enum import Enum
from typing import Any, TypeAlias


class LogLevel(str, Enum):
    """Levels emitted in the ``level`` field of every record."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    VERBOSE = "verbose"


LOG_LEVELS: tuple[str, ...] = tuple(level.value for level in LogLevel)

# Either ``(value,)`` or ``(message, error)``
LoggingParameters: TypeAlias = tuple[Any] | tuple[str, Any]

LogRecordDict: TypeAlias = dict[str, Any]
