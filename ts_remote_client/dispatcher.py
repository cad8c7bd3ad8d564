# =============================================================================
# TS Remote Client -- Event Dispatcher
# =============================================================================
#
# Publish/subscribe registry with deferred delivery. ``emit`` never calls a
# listener directly: each invocation is scheduled on the event loop, so a
# listener can't re-enter the dispatcher or observe a half-applied state
# transition.
# =============================================================================

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable

from ._logging import logger
from .types import EventCallback


class EventDispatcher:
    """Event name -> ordered list of callbacks.

    Callbacks may be plain functions or coroutine functions. Registration
    order is delivery order for a given emission; duplicates are kept.

    Args:
        loop: Loop to schedule deliveries on. Defaults to the running loop
            at the time of each ``emit``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._listeners: dict[str, list[EventCallback]] = defaultdict(list)
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def on(
        self, event: str, callback: EventCallback | None = None
    ) -> EventCallback | Callable[[EventCallback], EventCallback]:
        """Register *callback* for *event*.

        Without *callback*, returns a decorator::

            @dispatcher.on("ready")
            def handle(message):
                ...
        """
        if callback is None:

            def decorator(fn: EventCallback) -> EventCallback:
                self._listeners[event].append(fn)
                return fn

            return decorator

        self._listeners[event].append(callback)
        return callback

    def off(self, event: str, callback: EventCallback) -> None:
        """Remove every registration of *callback* for *event*.

        Callbacks are matched with ``==``. For plain functions and lambdas
        that is identity; bound methods of the same object compare equal,
        so ``off(e, obj.method)`` matches an earlier ``on(e, obj.method)``.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return
        # Rebind instead of mutating so snapshots taken by emit stay intact
        remaining = [cb for cb in listeners if cb != callback]
        if remaining:
            self._listeners[event] = remaining
        else:
            del self._listeners[event]

    def emit(self, event: str, *payload: Any) -> None:
        """Schedule one call per listener currently registered for *event*."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        loop = self._loop or asyncio.get_running_loop()
        for callback in list(listeners):
            loop.call_soon(self._invoke, event, callback, payload)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self, event: str | None = None) -> None:
        """Drop all listeners, or only those of *event*."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    # -- Internal -------------------------------------------------------------

    def _invoke(self, event: str, callback: EventCallback, payload: tuple[Any, ...]) -> None:
        try:
            result = callback(*payload)
        except Exception:
            logger.exception("Listener %r for '%s' raised", callback, event)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._background_tasks.add(task)
            task.add_done_callback(lambda t: self._task_done(event, t))

    def _task_done(self, event: str, task: asyncio.Task[Any]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Async listener for '%s' raised: %r", event, exc, exc_info=exc
            )
