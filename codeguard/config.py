"""
codeguard Configuration

Process settings loaded from environment variables, plus the flat
key/value monitoring configuration supplied by the editor host.
"""

import logging
import os
from dataclasses import dataclass, asdict
from typing import Any, Mapping

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Immutable process settings."""

    VERSION: str = "1.0.0"

    # --- External pattern documents (empty = built-in catalog) ---
    CATALOG_PATH: str = os.getenv("CODEGUARD_CATALOG_PATH", "")
    TODO_PATTERNS_PATH: str = os.getenv("CODEGUARD_TODO_PATTERNS_PATH", "")

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("CODEGUARD_LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv("CODEGUARD_LOG_FORMAT", "json")  # "json" or "text"


settings = Settings()


# ============================================================
# MONITORING CONFIGURATION (host key/value store)
# ============================================================

MONITORING_MODES = ("fileWatcher", "terminal", "both", "disabled")
AGGRESSIVENESS_LEVELS = ("zero-tolerance", "sophisticated", "light")


@dataclass(frozen=True)
class GuardConfig:
    """Monitoring configuration. Delays are in milliseconds."""

    monitoring_mode: str = "both"
    aggressiveness_level: str = "sophisticated"
    auto_intervention: bool = True
    typing_delay: int = 2000
    intervention_cooldown: int = 30000
    block_critical_saves: bool = True

    # store key -> field name
    _KEYS = {
        "monitoringMode": "monitoring_mode",
        "aggressivenessLevel": "aggressiveness_level",
        "autoIntervention": "auto_intervention",
        "typingDelay": "typing_delay",
        "interventionCooldown": "intervention_cooldown",
        "blockCriticalSaves": "block_critical_saves",
    }

    @classmethod
    def from_store(cls, store: Mapping[str, Any] | None = None) -> "GuardConfig":
        """
        Build a config from a flat key/value store.

        Missing keys take the documented defaults. Values of the wrong type
        or outside the allowed set are replaced by the default and logged.
        """
        store = store or {}
        defaults = cls()
        values: dict[str, Any] = {}

        for key, field_name in cls._KEYS.items():
            if key not in store:
                continue
            raw = store[key]
            default = getattr(defaults, field_name)
            value = _coerce(field_name, raw)
            if value is None:
                logger.warning(
                    "Invalid value for %s: %r, using default %r", key, raw, default,
                    extra={"error": "invalid_config_value"},
                )
                continue
            values[field_name] = value

        return cls(**values)

    def to_store(self) -> dict[str, Any]:
        """Inverse of from_store: host keys to values."""
        data = asdict(self)
        return {key: data[field_name] for key, field_name in self._KEYS.items()}

    # --- Convenience predicates ---

    def is_file_watcher_enabled(self) -> bool:
        return self.monitoring_mode in ("fileWatcher", "both")

    def is_terminal_monitoring_enabled(self) -> bool:
        return self.monitoring_mode in ("terminal", "both")

    def is_monitoring_enabled(self) -> bool:
        return self.monitoring_mode != "disabled"


def _coerce(field_name: str, raw: Any) -> Any:
    """Validate one store value. Returns None when unusable."""
    if field_name == "monitoring_mode":
        return raw if raw in MONITORING_MODES else None
    if field_name == "aggressiveness_level":
        return raw if raw in AGGRESSIVENESS_LEVELS else None
    if field_name in ("auto_intervention", "block_critical_saves"):
        return raw if isinstance(raw, bool) else None
    # Delays: non-negative integers (bool is an int subclass, reject it)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw < 0:
        return None
    return int(raw)
