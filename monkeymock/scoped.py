"""Run a callback and guarantee cleanup, whether it is sync or async."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


def try_catch_finally(
    action: Callable[[], Any],
    handle: Callable[[Exception], Any] | None = None,
    cleanup: Callable[[], None] | None = None,
) -> Any:
    """Call action, routing errors to handle and always running cleanup once.

    If action returns an awaitable, a coroutine is returned instead and
    handle/cleanup are applied when that awaitable settles. The caller must
    await it; cleanup is deferred until then.

    Args:
        action: Zero-argument callable to run.
        handle: Receives an Exception raised by action and returns the
            replacement result. Without it, errors propagate.
        cleanup: Runs after action (or its awaitable) finishes, however it
            finishes.

    Returns:
        The result of action (or of handle), or a coroutine wrapping it.
    """
    deferred = False
    try:
        try:
            result = action()
        except Exception as error:
            if handle is None:
                raise
            result = handle(error)
        if inspect.isawaitable(result):
            deferred = True
            return _settle(result, handle, cleanup)
        return result
    finally:
        if cleanup is not None and not deferred:
            cleanup()


async def _settle(
    pending: Awaitable[Any],
    handle: Callable[[Exception], Any] | None,
    cleanup: Callable[[], None] | None,
) -> Any:
    try:
        try:
            return await pending
        except Exception as error:
            if handle is None:
                raise
            result = handle(error)
            if inspect.isawaitable(result):
                return await result
            return result
    finally:
        if cleanup is not None:
            cleanup()


def run_scoped(action: Callable[[], T], cleanup: Callable[[], None]) -> T:
    """Shorthand for try_catch_finally(action, cleanup=cleanup)."""
    return try_catch_finally(action, cleanup=cleanup)
