"""
CodeGuard — Application Context

Owns every long-lived piece of state: the compiled catalog, the
profile store, the notification queue, both cooldown gates and the
two monitors. The editor host builds one CodeGuard, forwards its
events to `files` / `conversations`, and disposes it on shutdown.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from codeguard.config import GuardConfig, Settings, settings as default_settings
from codeguard.conversation import CONVERSATION_COOLDOWN, ConversationMonitor
from codeguard.cooldown import CooldownGate
from codeguard.detector import PatternDetector
from codeguard.hosts import TerminalLocator, UIHost, no_terminal
from codeguard.intervention import InterventionEngine
from codeguard.monitor import FileMonitor
from codeguard.notifications import NotificationQueue
from codeguard.patterns.catalog import load_catalog
from codeguard.patterns.todo import TodoAnalyzer, load_todo_patterns
from codeguard.profiles import AggressivenessProfile, ProfileStore
from codeguard.report import describe_configuration

logger = logging.getLogger(__name__)


class CodeGuard:
    """
    Wires the detection core to the host interfaces.

    Args:
        ui: Editor surface.
        terminals: Returns the assistant's terminal, or None.
        config: Monitoring configuration (defaults when omitted).
        settings: Process settings (pattern document paths).
        clock: Monotonic clock shared by the gates and the file throttle.
    """

    def __init__(
        self,
        ui: UIHost,
        terminals: TerminalLocator = no_terminal,
        config: Optional[GuardConfig] = None,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ui = ui
        self.config = config or GuardConfig()
        self.catalog = load_catalog(settings.CATALOG_PATH)
        self.profiles = ProfileStore(self.config.aggressiveness_level)
        self.detector = PatternDetector(self.catalog, self.profiles)

        self.file_gate = CooldownGate("file", self.config.intervention_cooldown / 1000, clock=clock)
        self.conversation_gate = CooldownGate("conversation", CONVERSATION_COOLDOWN, clock=clock)

        self.queue = NotificationQueue(ui, on_enforce=self.enforce_quality)
        self.engine = InterventionEngine(ui, terminals, self.file_gate, self.config)
        self.files = FileMonitor(self.detector, self.engine, self.queue, self.config, clock=clock)
        self.conversations = ConversationMonitor(
            self.detector,
            TodoAnalyzer(load_todo_patterns(settings.TODO_PATTERNS_PATH)),
            self.queue,
            terminals,
            self.conversation_gate,
        )
        self._apply()

        logger.info(
            "Code guard initialized (%s, %s)",
            self.config.monitoring_mode, self.profiles.current.name,
            extra={"profile": self.profiles.current.key, **self.catalog.stats()},
        )

    def _apply(self) -> None:
        self.queue.enabled = self.profiles.current.behavior.show_notifications
        self.engine.config = self.config
        self.files.update_config(self.config)
        self.file_gate.window = self.config.intervention_cooldown / 1000
        self.conversations.enabled = self.config.is_terminal_monitoring_enabled()

    def update_config(self, config: GuardConfig) -> None:
        """Apply a new host configuration (e.g. after the settings store changed)."""
        self.config = config
        if config.aggressiveness_level != self.profiles.current.key:
            self.profiles.set_current(config.aggressiveness_level)
        self._apply()

    def set_aggressiveness(self, name: str) -> AggressivenessProfile:
        """Switch profile. Raises ValueError for an unknown name."""
        profile = self.profiles.set_current(name)
        self.config = replace(self.config, aggressiveness_level=profile.key)
        self._apply()
        return profile

    async def show_status(self) -> None:
        await self.ui.open_read_only_panel(
            "Code Guard Configuration",
            describe_configuration(self.config, self.profiles.current),
        )

    async def enforce_quality(self) -> None:
        await self.conversations.enforce_quality()

    def stats(self) -> dict:
        return {
            "profile": self.profiles.current.key,
            "monitoring_mode": self.config.monitoring_mode,
            "files": self.files.stats(),
            "conversations": self.conversations.stats(),
            "notifications": {
                "pending": self.queue.pending,
                "shown": self.queue.shown,
            },
            "patterns": self.detector.pattern_stats(),
        }

    def dispose(self) -> None:
        self.files.dispose()
        self.conversations.dispose()
        self.queue.dispose()
        self.file_gate.dispose()
        self.conversation_gate.dispose()
        logger.info("Code guard stopped")
