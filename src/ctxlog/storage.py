"""
Ambient log context storage using contextvars.

The active ``LogContext`` lives in a ``ContextVar``, so it follows the
dynamic extent of a call without being passed as a parameter:

- Thread-safe and asyncio-compatible: every ``asyncio.Task`` runs in a copy
  of the context it was created in, so concurrent requests never see each
  other's log context.
- Scopes nest: an inner scope shadows the outer one and the outer one is
  restored on exit, whether the body returns or raises.

Usage:
    ctx = LogContext.create(session_id="req-123")

    with_log_context(ctx, handle_request, payload)

    result = await with_log_context(ctx, handle_request_async, payload)

    with log_context(ctx.with_tags("db")):
        run_query()
"""

import contextvars
import functools
import inspect
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from ctxlog.context import EMPTY_CONTEXT, LogContext

T = TypeVar("T")

_log_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar("ctxlog_log_context")  # noqa: B039


def get_log_context() -> LogContext:
    """Return the context active on this execution branch, or the empty context."""
    return _log_context.get(EMPTY_CONTEXT)


def with_log_context(context: LogContext, body: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run ``body(*args, **kwargs)`` with ``context`` as the ambient log context.

    For a coroutine function the returned awaitable keeps ``context`` active
    for the whole awaited extent, including across suspension points:

        result = await with_log_context(ctx, fetch_user, user_id)

    Any other result, including a Task or Future the body created, is returned
    unchanged; those already captured the context when they were created.

    The previous context is restored on exit and exceptions propagate unchanged.
    """
    token = _log_context.set(context)
    try:
        result = body(*args, **kwargs)
    finally:
        _log_context.reset(token)
    if inspect.iscoroutine(result):
        return _await_with_log_context(context, result)  # type: ignore[return-value]
    return result


async def _await_with_log_context(context: LogContext, awaitable: Awaitable[T]) -> T:
    token = _log_context.set(context)
    try:
        return await awaitable
    finally:
        _log_context.reset(token)


@contextmanager
def log_context(context: LogContext) -> Iterator[LogContext]:
    """
    Context manager form of ``with_log_context``.

    Works inside coroutines as well; the scope ends at the ``with`` block.

        async def handler():
            with log_context(get_log_context().with_tags("db")):
                await run_query()
    """
    token = _log_context.set(context)
    try:
        yield context
    finally:
        _log_context.reset(token)


def bind_log_context(func: Callable[..., T]) -> Callable[..., T]:
    """
    Capture the caller's context for a callback that will run elsewhere.

    Executors and ``loop.call_soon`` callbacks do not inherit the scheduling
    branch's context on their own:

        executor.submit(bind_log_context(write_report), path)
    """
    snapshot = contextvars.copy_context()

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        # A Context can only be entered once at a time, so run on a fresh copy
        return snapshot.copy().run(func, *args, **kwargs)

    return wrapper
