from __future__ import annotations

"""Utility helpers for scheduling coroutines and invoking caller callbacks."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional, Union

CoroutineFactory = Callable[[], Coroutine[Any, Any, Any]]

_MODULE_LOGGER = logging.getLogger(__name__)


def safely_schedule_coroutine(
    coro_or_factory: Union[Coroutine[Any, Any, Any], CoroutineFactory],
) -> Optional[asyncio.Task[Any]]:
    """
    Schedule the provided coroutine on the running loop.

    Accept either a coroutine object or a zero-argument callable that returns a
    coroutine, which prevents creating the coroutine unless scheduling actually
    happens. Without a running loop the coroutine is run to completion.
    """
    coro = _resolve_coroutine(coro_or_factory)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(coro)
        return None

    return loop.create_task(coro)


def _resolve_coroutine(
    coro_or_factory: Union[Coroutine[Any, Any, Any], CoroutineFactory],
) -> Coroutine[Any, Any, Any]:
    """Turn the input into a coroutine object for scheduling."""
    if asyncio.iscoroutine(coro_or_factory):
        return coro_or_factory

    if callable(coro_or_factory):
        result = coro_or_factory()
        if not asyncio.iscoroutine(result):
            raise TypeError("Callable passed to safely_schedule_coroutine must return a coroutine")
        return result

    raise TypeError("safely_schedule_coroutine expects a coroutine or a callable returning one")


async def invoke_callback(callback: Callable[..., Any], *args: Any) -> Any:
    """Call ``callback`` and await its result when it is awaitable."""
    result = callback(*args)
    if inspect.isawaitable(result):
        return await result
    return result


async def _await_logged(awaitable: Awaitable[Any], name: str, logger: logging.Logger) -> None:
    try:
        await awaitable
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Callback %s failed", name)


def dispatch_callback(
    callback: Optional[Callable[..., Any]],
    *args: Any,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Fire a caller-supplied callback without letting it break the caller.

    Plain functions run inline; coroutine results are scheduled as tasks.
    Failures are logged with their traceback.
    """
    if callback is None:
        return
    log = logger or _MODULE_LOGGER
    name = getattr(callback, "__qualname__", repr(callback))
    try:
        result = callback(*args)
    except Exception:
        log.exception("Callback %s failed", name)
        return
    if inspect.isawaitable(result):
        safely_schedule_coroutine(_await_logged(result, name, log))


__all__ = ["dispatch_callback", "invoke_callback", "safely_schedule_coroutine"]
