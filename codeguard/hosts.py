"""
Host Interfaces — Editor UI and Terminal

The core never renders anything or types into a terminal itself.
It calls these interfaces, which the embedding editor implements.
All methods are coroutines; the core never assumes the host answers
synchronously.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)


class UIHost(ABC):
    """Abstract base for the editor's user-facing surface."""

    @abstractmethod
    async def show_message(self, text: str, choices: Sequence[str] = ()) -> Optional[str]:
        """Show a message. Returns the chosen label, or None if dismissed."""
        ...

    @abstractmethod
    async def show_blocking_error(self, text: str, choices: Sequence[str] = ()) -> Optional[str]:
        """Show a modal error (used for save-blocking). Returns the chosen label."""
        ...

    @abstractmethod
    async def open_read_only_panel(self, title: str, body: str) -> None:
        """Open a read-only panel with an HTML or markdown body."""
        ...


class TerminalHost(ABC):
    """Abstract base for the terminal an AI assistant runs in."""

    name: str = "terminal"

    @abstractmethod
    async def send_text(self, text: str, add_newline: bool = True) -> None:
        ...

    @abstractmethod
    async def show(self) -> None:
        ...


# Returns the active terminal, or None when there is none to correct
TerminalLocator = Callable[[], Optional[TerminalHost]]


def no_terminal() -> Optional[TerminalHost]:
    return None


class LoggingUIHost(UIHost):
    """Headless host: logs everything, never picks a choice."""

    async def show_message(self, text, choices=()):
        logger.info("Message: %s %s", text, list(choices))
        return None

    async def show_blocking_error(self, text, choices=()):
        logger.warning("Blocking error: %s %s", text, list(choices))
        return None

    async def open_read_only_panel(self, title, body):
        logger.info("Panel: %s (%d chars)", title, len(body))
