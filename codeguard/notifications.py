"""
Notification Queue — Paced, Sequential Action Display

Decided actions are queued and shown one at a time, FIFO. Each item
waits out its kind-specific delay before it is handed to the UI host,
even when more items arrive meanwhile, so the user is never flooded:

  - intervention_complete: 1s  (immediate feedback)
  - tool_issue:            3s
  - todo_issue:            5s  (low priority)

A disabled queue drops new items silently. Host failures are logged
and never stop the drain loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional

from codeguard.hosts import UIHost

logger = logging.getLogger(__name__)

SHOW_DETAILS = "Show Details"
QUALITY_ENFORCEMENT = "Quality Enforcement"
REQUEST_COMPLETE = "Request Complete Implementation"
IGNORE = "Ignore"


class NotificationKind(str, Enum):
    INTERVENTION_COMPLETE = "intervention_complete"
    TOOL_ISSUE = "tool_issue"
    TODO_ISSUE = "todo_issue"


NOTIFICATION_DELAYS: dict[NotificationKind, float] = {
    NotificationKind.INTERVENTION_COMPLETE: 1.0,
    NotificationKind.TOOL_ISSUE: 3.0,
    NotificationKind.TODO_ISSUE: 5.0,
}

# Delay for a kind missing from the delay table
DEFAULT_DELAY = 15.0


@dataclass
class Notification:
    kind: NotificationKind
    patterns: list[str] = field(default_factory=list)
    tool: Optional[str] = None
    confidence: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    message_num: Optional[int] = None


class NotificationQueue:
    """
    FIFO queue drained by a single task.

    Args:
        ui: Host that displays the notifications.
        delays: Per-kind delay in seconds (missing kinds use DEFAULT_DELAY).
        on_enforce: Called when the user asks for quality enforcement.
        sleep: Awaitable delay, injectable for tests.
    """

    def __init__(
        self,
        ui: UIHost,
        delays: Optional[Mapping[NotificationKind, float]] = None,
        on_enforce: Optional[Callable[[], Awaitable[None]]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        enabled: bool = True,
    ):
        self._ui = ui
        self._delays = dict(NOTIFICATION_DELAYS if delays is None else delays)
        self._on_enforce = on_enforce
        self._sleep = sleep
        self.enabled = enabled
        self._queue: deque[tuple[Notification, float]] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._waiting = False
        self.shown: int = 0

    def delay_for(self, kind: NotificationKind) -> float:
        return self._delays.get(kind, DEFAULT_DELAY)

    def enqueue(self, notification: Notification) -> None:
        """Queue a notification. Needs a running loop."""
        if not self.enabled:
            logger.info(
                "Notification disabled: %s", notification.kind.value,
                extra={"kind": notification.kind.value, "patterns": notification.patterns},
            )
            return

        delay = self.delay_for(notification.kind)
        self._queue.append((notification, delay))
        logger.debug(
            "Notification queued: %s (delay %.1fs)", notification.kind.value, delay,
            extra={"kind": notification.kind.value},
        )

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    async def _drain(self) -> None:
        me = asyncio.current_task()
        while self._queue:
            notification, delay = self._queue.popleft()
            self._waiting = True
            try:
                await self._sleep(delay)
            finally:
                # A cleared (cancelled) drain must not touch its successor's flag
                if self._drain_task is me:
                    self._waiting = False
            await self._display(notification)

    async def _display(self, notification: Notification) -> None:
        try:
            if notification.kind == NotificationKind.INTERVENTION_COMPLETE:
                await self._show_intervention_complete(notification)
            elif notification.kind == NotificationKind.TOOL_ISSUE:
                await self._show_tool_issue(notification)
            else:
                await self._show_todo_issue(notification)
            self.shown += 1
        except Exception as e:
            logger.warning(
                "Notification display failed: %s", e,
                extra={"kind": notification.kind.value, "error": type(e).__name__},
            )

    async def _show_intervention_complete(self, n: Notification) -> None:
        choice = await self._ui.show_message(
            f"Quality issue addressed! Patterns: {', '.join(n.patterns[:2])}",
            [SHOW_DETAILS],
        )
        if choice == SHOW_DETAILS:
            await self._ui.show_message(
                "Quality Issue Details:\n\n"
                f"Detected patterns: {', '.join(n.patterns)}\n\n"
                "Corrective action taken: interrupted the assistant and "
                "requested a complete implementation."
            )

    async def _show_tool_issue(self, n: Notification) -> None:
        marker = "[!!]" if n.severity in ("HIGH", "CRITICAL") else "[!]"
        choice = await self._ui.show_message(
            f"{marker} Quality issue! {n.tool or 'Code quality issue'} detected",
            [SHOW_DETAILS, QUALITY_ENFORCEMENT, IGNORE],
        )
        if choice == SHOW_DETAILS:
            lines = ["Quality Issue Details:", ""]
            if n.tool:
                lines.append(f"Tool: {n.tool}")
            if n.confidence:
                lines.append(f"Confidence: {n.confidence}")
            if n.severity:
                lines.append(f"Severity: {n.severity}")
            if n.description:
                lines.extend(["", n.description])
            await self._ui.show_message("\n".join(lines))
        elif choice == QUALITY_ENFORCEMENT:
            await self._enforce()

    async def _show_todo_issue(self, n: Notification) -> None:
        choice = await self._ui.show_message(
            f"Implementation issue detected! Patterns: {', '.join(n.patterns)}",
            [REQUEST_COMPLETE],
        )
        if choice == REQUEST_COMPLETE:
            await self._enforce()

    async def _enforce(self) -> None:
        if self._on_enforce is not None:
            await self._on_enforce()

    def clear(self) -> None:
        """Drop everything pending, including an item still waiting out its delay."""
        self._queue.clear()
        if self._waiting and self._drain_task is not None:
            self._drain_task.cancel()
            self._drain_task = None
            self._waiting = False
        logger.debug("Notification queue cleared")

    async def join(self) -> None:
        """Wait until the queue has drained."""
        while self._drain_task is not None and not self._drain_task.done():
            task = self._drain_task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    def dispose(self) -> None:
        self.enabled = False
        self._queue.clear()
        if self._drain_task is not None:
            self._drain_task.cancel()
