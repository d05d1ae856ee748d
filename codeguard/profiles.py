"""
Aggressiveness Profiles

A profile bundles the classification thresholds, which pattern
capabilities are active, and what the intervention layer may do
(block saves, notify, auto-correct). Three profiles ship built-in
and are registered before any external configuration is read, so
the store is always in a fully defined state.

Exactly one profile is current at a time. The store is an owned
object (see guard.CodeGuard), not a module-level singleton.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from codeguard.patterns.catalog import SOURCE_CODE, SOURCE_TERMINAL

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Pattern families a profile can switch off."""
    SECURITY_ISSUES = "securityIssues"
    TYPESCRIPT_BAILOUTS = "typescriptBailouts"
    PRODUCTION_ISSUES = "productionIssues"
    CODE_QUALITY_ISSUES = "codeQualityIssues"
    TERMINAL_BAILOUTS = "terminalBailouts"


# Code categories with a dedicated switch. Every terminal category is
# governed by TERMINAL_BAILOUTS; unknown code categories are always on.
CODE_CATEGORY_CAPABILITY: dict[str, Capability] = {
    "SECURITY_ISSUES": Capability.SECURITY_ISSUES,
    "TYPESCRIPT_BAILOUTS": Capability.TYPESCRIPT_BAILOUTS,
    "PRODUCTION_ISSUES": Capability.PRODUCTION_ISSUES,
    "CODE_QUALITY_ISSUES": Capability.CODE_QUALITY_ISSUES,
}


def capability_for(category: str, source: str) -> Optional[Capability]:
    """The capability switch governing a category, or None if ungoverned."""
    if source == SOURCE_TERMINAL:
        return Capability.TERMINAL_BAILOUTS
    if source == SOURCE_CODE:
        return CODE_CATEGORY_CAPABILITY.get(category)
    return None


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class Thresholds:
    """Inclusive lower bounds for CRITICAL / POOR / ACCEPTABLE and auto-intervention."""
    critical_score: int = 50
    poor_score: int = 30
    warning_score: int = 15
    auto_intervention_score: int = 30


@dataclass(frozen=True)
class Behavior:
    auto_intervention_enabled: bool = True
    block_saves: bool = True
    show_notifications: bool = True
    detailed_reports: bool = True


def _all_enabled() -> Mapping[Capability, bool]:
    return MappingProxyType({cap: True for cap in Capability})


@dataclass(frozen=True)
class AggressivenessProfile:
    """Read-only bundle of thresholds, enabled capabilities and behavior flags."""
    key: str                 # store key, e.g. "zero-tolerance"
    name: str                # display name
    description: str
    thresholds: Thresholds
    enabled_patterns: Mapping[Capability, bool] = field(default_factory=_all_enabled)
    behavior: Behavior = field(default_factory=Behavior)

    def is_pattern_enabled(self, capability: Capability | str) -> bool:
        """Unknown capabilities are treated as enabled."""
        try:
            capability = Capability(capability)
        except ValueError:
            return True
        return self.enabled_patterns.get(capability, True)

    def is_category_enabled(self, category: str, source: str) -> bool:
        capability = capability_for(category, source)
        return capability is None or self.is_pattern_enabled(capability)

    def should_auto_intervene(self, severity_score: int) -> bool:
        return (
            self.behavior.auto_intervention_enabled
            and severity_score >= self.thresholds.auto_intervention_score
        )


DEFAULT_THRESHOLDS = Thresholds()


# ============================================================
# BUILT-IN PROFILES
# ============================================================

ZERO_TOLERANCE = AggressivenessProfile(
    key="zero-tolerance",
    name="Zero-Tolerance",
    description="Maximum protection - catches all issues, blocks saves, immediate intervention",
    thresholds=Thresholds(
        critical_score=15, poor_score=10, warning_score=5, auto_intervention_score=10,
    ),
)

SOPHISTICATED = AggressivenessProfile(
    key="sophisticated",
    name="Sophisticated",
    description="Intelligent monitoring - balanced protection with smart intervention",
    thresholds=DEFAULT_THRESHOLDS,
)

LIGHT = AggressivenessProfile(
    key="light",
    name="Light",
    description="Minimal monitoring - only catches blatant security and critical issues",
    thresholds=Thresholds(
        critical_score=80, poor_score=60, warning_score=40, auto_intervention_score=80,
    ),
    enabled_patterns=MappingProxyType({
        Capability.SECURITY_ISSUES: True,
        Capability.TYPESCRIPT_BAILOUTS: False,
        Capability.PRODUCTION_ISSUES: False,
        Capability.CODE_QUALITY_ISSUES: False,
        Capability.TERMINAL_BAILOUTS: True,
    }),
    behavior=Behavior(
        auto_intervention_enabled=True,
        block_saves=False,
        show_notifications=False,
        detailed_reports=False,
    ),
)

BUILTIN_PROFILES = (ZERO_TOLERANCE, SOPHISTICATED, LIGHT)


class ProfileStore:
    """
    Holds the named profiles and the current selection.

    Switching is a single reference assignment, so a scan that has
    already read `current` keeps the profile it started with.
    """

    def __init__(self, current: str = "sophisticated"):
        self._profiles: dict[str, AggressivenessProfile] = {
            p.key: p for p in BUILTIN_PROFILES
        }
        self._current = self.get(current)

    def get(self, name: str) -> AggressivenessProfile:
        try:
            return self._profiles[name]
        except KeyError:
            raise ValueError(f"Unknown aggressiveness profile: {name}") from None

    @property
    def current(self) -> AggressivenessProfile:
        return self._current

    def set_current(self, name: str) -> AggressivenessProfile:
        profile = self.get(name)
        self._current = profile
        logger.info(
            "Aggressiveness changed to %s - %s", profile.name, profile.description,
            extra={"profile": profile.key},
        )
        return profile

    def all(self) -> list[AggressivenessProfile]:
        return list(self._profiles.values())

    def is_pattern_enabled(self, capability: Capability | str) -> bool:
        return self._current.is_pattern_enabled(capability)
