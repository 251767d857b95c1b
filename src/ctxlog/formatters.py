"""
Log record assembly.

Turns a level, the positional arguments of a log call and the ambient
``LogContext`` into the record that gets serialized:

    {
        "level": "error",
        "message": "Failed to fetch user ValueError text",
        "sessionId": "req-123",
        "details": {
            "tags": ["api"],
            "category": "http",
            "stack": "Traceback (most recent call last): ...",
            "timestamp": "2026-01-01T00:00:00.000Z"
        }
    }

Optional fields are omitted rather than set to null or an empty collection.
"""

import traceback
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from ctxlog.context import LogContext
from ctxlog.types import LogRecordDict

# Context fields that live at the top level of a record, next to ``level``
_TOP_LEVEL_FIELDS = ("sessionId", "transactionId")


def utc_now_iso() -> str:
    """Return current UTC time in ISO-8601 format with Z suffix."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _error_text(error: BaseException) -> str:
    return str(error).strip() or type(error).__name__


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()


def extract_message(parameters: Sequence[Any]) -> Any:
    """
    Extract the display message from log call arguments.

    A single exception yields its trimmed text (the class name if blank),
    any other single value is returned as-is, and a (message, error) pair
    yields ``"<message> <error text>"``.
    """
    if len(parameters) == 1:
        (value,) = parameters
        return _error_text(value) if isinstance(value, BaseException) else value
    message, error = parameters
    error_text = _error_text(error) if isinstance(error, BaseException) else str(error)
    return f"{message} {error_text}"


def extract_stack(parameters: Sequence[Any]) -> str | None:
    """Return the formatted traceback of the error argument, if there is one."""
    error = parameters[-1]
    if isinstance(error, BaseException):
        return _format_stack(error) or None
    return None


def create_log_object(
    level: str,
    parameters: Sequence[Any],
    context: LogContext,
    *,
    timestamp: str | None = None,
    include_stack: bool = True,
    default_service: str | None = None,
) -> LogRecordDict:
    """Build a serializable record from a log call and the active context."""
    if len(parameters) not in (1, 2):
        raise TypeError(f"log calls take 1 or 2 positional arguments ({len(parameters)} given)")

    context_fields = context.to_dict()
    if default_service and "service" not in context_fields:
        context_fields["service"] = default_service

    details: dict[str, Any] = {}
    for key in ("tags", "service", "category", "sourceRecords"):
        if key in context_fields:
            details[key] = context_fields[key]
    stack = extract_stack(parameters) if include_stack else None
    if stack:
        details["stack"] = stack
    if "metadata" in context_fields:
        details["metadata"] = context_fields["metadata"]
    details["timestamp"] = timestamp or utc_now_iso()

    record: LogRecordDict = {"level": level}
    message = extract_message(parameters)
    if message is not None:
        record["message"] = message
    for key in _TOP_LEVEL_FIELDS:
        if key in context_fields:
            record[key] = context_fields[key]
    record["details"] = details
    return record
