"""
CodeGuard — AI Code Quality Enforcement Engine

Watches AI-assisted coding sessions for implementation avoidance and
low-quality code, and intervenes through the editor and terminal.

Public API:
  - PatternDetector:   Weighted multi-category regex scan + severity classification
  - match_patterns:    Stateless scan of one text against a catalog
  - classify:          Severity score and quality level for a set of matches
  - ProfileStore:      Aggressiveness profiles (zero-tolerance / sophisticated / light)
  - decide_intervention: Detection + trigger -> BLOCK / SIGNAL_FOR_FIX / WARNING / NONE
  - CooldownGate:      Cooldown-gated one-shot trigger
  - NotificationQueue: Paced sequential notification display
  - CodeGuard:         Application context wiring it all to the host interfaces
  - setup_logging:     Configure the codeguard logger (JSON or text) from settings

Usage:
    from codeguard import CodeGuard, PatternDetector
    from codeguard import UIHost, TerminalHost
    from codeguard import setup_logging
    setup_logging()
"""

__version__ = "1.0.0"

from codeguard.patterns.catalog import (
    DEFAULT_CATALOG,
    PatternCatalog,
    load_catalog,
)
from codeguard.scorer import DetectionResult, PatternMatch, QualityLevel, classify
from codeguard.detector import PatternDetector, match_patterns
from codeguard.profiles import AggressivenessProfile, Capability, ProfileStore
from codeguard.policy import InterventionLevel, TriggerType, decide_intervention
from codeguard.cooldown import CooldownGate
from codeguard.notifications import Notification, NotificationKind, NotificationQueue
from codeguard.hosts import LoggingUIHost, TerminalHost, UIHost
from codeguard.intervention import SaveBlockedError
from codeguard.config import GuardConfig
from codeguard.guard import CodeGuard
from codeguard.logging import get_logger, setup_logging

__all__ = [
    "DEFAULT_CATALOG",
    "PatternCatalog",
    "load_catalog",
    "DetectionResult",
    "PatternMatch",
    "QualityLevel",
    "classify",
    "PatternDetector",
    "match_patterns",
    "AggressivenessProfile",
    "Capability",
    "ProfileStore",
    "InterventionLevel",
    "TriggerType",
    "decide_intervention",
    "CooldownGate",
    "Notification",
    "NotificationKind",
    "NotificationQueue",
    "LoggingUIHost",
    "TerminalHost",
    "UIHost",
    "SaveBlockedError",
    "GuardConfig",
    "CodeGuard",
    "get_logger",
    "setup_logging",
]
