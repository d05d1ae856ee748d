"""
Debouncer — Cancel-and-Restart Timers per Stream

Each stream identity (file path, transcript path) owns at most one
pending timer. Scheduling again replaces it, so only the last event
in a burst ever fires. Coroutine callbacks run as tasks, which are
tracked so dispose() can cancel them too.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, delay: float):
        self.delay = delay
        self._timers: dict[Hashable, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, key: Hashable, callback: Callable[..., Any], *args: Any) -> None:
        """(Re)start the timer for `key`. Needs a running loop."""
        loop = asyncio.get_running_loop()
        existing = self._timers.pop(key, None)
        if existing is not None:
            existing.cancel()
        self._timers[key] = loop.call_later(self.delay, self._fire, key, callback, args)

    def _fire(self, key: Hashable, callback: Callable[..., Any], args: tuple) -> None:
        self._timers.pop(key, None)
        result = callback(*args)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Debounced analysis failed: %s", task.exception(),
                exc_info=task.exception(),
                extra={"error": type(task.exception()).__name__},
            )

    def cancel(self, key: Hashable) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()

    def pending(self, key: Hashable) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    async def drain(self) -> None:
        """Wait for callbacks already fired to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
