"""
Logging configuration.

Settings are read from environment variables (or a ``.env`` file):

- CTXLOG_SERVICE: default ``details.service`` when the active context has none
- CTXLOG_INCLUDE_STACK: emit ``details.stack`` for errors (default: true)
- CTXLOG_STREAM: stdout | stderr (default: stdout)

Usage:
    from ctxlog import configure_logging
    configure_logging()

    # Or with explicit settings
    configure_logging(service="billing-worker", include_stack=False)

The context value and ambient storage are never affected by configuration;
only record assembly and output are.
"""

import logging
import sys
from typing import Literal, TextIO

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_log = logging.getLogger("ctxlog")


class LoggerSettings(BaseSettings):
    """Environment-driven settings for the default logger."""

    model_config = SettingsConfigDict(
        env_prefix="CTXLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service: str | None = Field(default=None, description="Fallback service name")
    include_stack: bool = Field(default=True, description="Emit details.stack for errors")
    stream: Literal["stdout", "stderr"] = Field(default="stdout", description="Output stream")


# Active settings and output override
_settings: LoggerSettings | None = None
_output: TextIO | None = None
_configured = False


def configure_logging(
    service: str | None = None,
    include_stack: bool | None = None,
    output: TextIO | None = None,
    force: bool = False,
) -> LoggerSettings:
    """
    Configure the default logger.

    Should be called once at application startup. Subsequent calls are
    no-ops unless force=True. Explicit arguments override environment values.

    Args:
        service: Fallback service name (overrides CTXLOG_SERVICE)
        include_stack: Emit stack traces (overrides CTXLOG_INCLUDE_STACK)
        output: Stream to write records to (overrides CTXLOG_STREAM)
        force: Reconfigure even if already configured

    Returns:
        The active settings
    """
    global _settings, _output, _configured

    if _configured and not force:
        return get_settings()

    overrides = {}
    if service is not None:
        overrides["service"] = service
    if include_stack is not None:
        overrides["include_stack"] = include_stack

    _settings = LoggerSettings(**overrides)
    _output = output
    _configured = True
    _log.debug(
        "ctxlog configured: service=%s include_stack=%s stream=%s",
        _settings.service,
        _settings.include_stack,
        "custom" if output is not None else _settings.stream,
    )
    return _settings


def get_settings() -> LoggerSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = LoggerSettings()
    return _settings


def get_output() -> TextIO:
    """Return the stream records are written to, resolved at call time."""
    if _output is not None:
        return _output
    return sys.stderr if get_settings().stream == "stderr" else sys.stdout


def reset_logging() -> None:
    """Forget configuration; the next use reloads settings from the environment."""
    global _settings, _output, _configured
    _settings = None
    _output = None
    _configured = False


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
