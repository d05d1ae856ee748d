"""
Cooldown Gate — Cooldown-Gated One-Shot Trigger

Guards an intervention kind against re-firing:
  - while an intervention is active, nothing else of that kind starts
  - after one fires, the next may start only once `window` seconds
    have elapsed since it fired
  - the active flag drops back automatically `settle_delay` seconds
    after the action was dispatched (timer-based, not confirmation-based)

File-save interventions and conversation interventions each own a
separate gate; they never share state.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 5.0


@dataclass
class InterventionState:
    """Snapshot of a gate."""
    key: str
    is_active: bool
    last_fired_at: Optional[float]
    window: float


class CooldownGate:
    """One-shot trigger with mutual exclusion and a cooldown window."""

    def __init__(
        self,
        key: str,
        window: float,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.key = key
        self.window = window
        self.settle_delay = settle_delay
        self._clock = clock
        self._active = False
        self._last_fired_at: Optional[float] = None
        self._release_handle: Optional[asyncio.TimerHandle] = None
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._active

    def _cooled_down(self) -> bool:
        if self._last_fired_at is None:
            return True
        return self._clock() - self._last_fired_at >= self.window

    def can_fire(self) -> bool:
        """Check without acquiring."""
        with self._lock:
            return not self._active and self._cooled_down()

    def try_acquire(self) -> bool:
        """
        Atomically check and mark the gate active.

        Returns:
            True if the caller may fire now; False if an intervention of
            this kind is active or the window has not elapsed.
        """
        with self._lock:
            if self._active or not self._cooled_down():
                logger.info(
                    "Intervention skipped - already active or too recent",
                    extra={"kind": self.key},
                )
                return False
            self._active = True
            self._last_fired_at = self._clock()
            return True

    def schedule_release(self) -> None:
        """Drop the active flag after the settle delay. Needs a running loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._release_handle is not None:
                self._release_handle.cancel()
            self._release_handle = loop.call_later(self.settle_delay, self.release)

    def release(self) -> None:
        with self._lock:
            if self._release_handle is not None:
                self._release_handle.cancel()
                self._release_handle = None
            if self._active:
                logger.debug("Intervention lock released", extra={"kind": self.key})
            self._active = False

    def dispose(self) -> None:
        """Cancel the pending release and forget all history."""
        with self._lock:
            if self._release_handle is not None:
                self._release_handle.cancel()
                self._release_handle = None
            self._active = False
            self._last_fired_at = None

    @property
    def state(self) -> InterventionState:
        return InterventionState(
            key=self.key,
            is_active=self._active,
            last_fired_at=self._last_fired_at,
            window=self.window,
        )
