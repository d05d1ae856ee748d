"""
Severity Classifier

Reduces a list of pattern matches to a severity score and a
discrete quality level. Separated from detector.py for
single-responsibility.

Score = sum of match weights, plus:
  - +10 when three or more matches were found (compounding)
  - +10 when any terminal match is educational positioning

Level = ordered walk over inclusive lower bounds:
  CRITICAL >= critical, POOR >= poor, ACCEPTABLE >= warning,
  GOOD >= 5, else EXCELLENT.
A profile substitutes its own critical/poor/warning values; the
GOOD floor never moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from codeguard.patterns.catalog import (
    DIRECT_REFUSAL,
    EDUCATIONAL_POSITIONING,
    SOURCE_CODE,
    SOURCE_TERMINAL,
)
from codeguard.profiles import DEFAULT_THRESHOLDS, Thresholds

COMPOUND_MATCH_COUNT = 3
COMPOUND_BONUS = 10
EDUCATIONAL_DEFLECTION_BONUS = 10
GOOD_FLOOR = 5


class QualityLevel(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def at_least(self, other: "QualityLevel") -> bool:
        return self.rank >= other.rank


_LEVEL_RANK = {
    QualityLevel.EXCELLENT: 0,
    QualityLevel.GOOD: 1,
    QualityLevel.ACCEPTABLE: 2,
    QualityLevel.POOR: 3,
    QualityLevel.CRITICAL: 4,
}


@dataclass(frozen=True)
class PatternMatch:
    """A single rule hit raised during a scan."""
    category: str       # e.g. "SECURITY_ISSUES"
    pattern: str        # regex source of the rule that fired
    matched_text: str   # the text fragment that triggered it
    weight: int
    source: str         # "code" | "terminal"


@dataclass(frozen=True)
class DetectionResult:
    """Result of classifying one scan. Never mutated after construction."""
    matches: tuple[PatternMatch, ...]
    severity_score: int
    quality_level: QualityLevel
    has_direct_refusal: bool
    has_educational_deflection: bool

    @property
    def terminal_matches(self) -> tuple[PatternMatch, ...]:
        return tuple(m for m in self.matches if m.source == SOURCE_TERMINAL)

    @property
    def code_matches(self) -> tuple[PatternMatch, ...]:
        return tuple(m for m in self.matches if m.source == SOURCE_CODE)

    @property
    def categories(self) -> list[str]:
        """Distinct matched categories, in first-seen order."""
        return list(dict.fromkeys(m.category for m in self.matches))

    def to_dict(self) -> dict:
        return {
            "severity_score": self.severity_score,
            "quality_level": self.quality_level.value,
            "has_direct_refusal": self.has_direct_refusal,
            "has_educational_deflection": self.has_educational_deflection,
            "matches": [
                {
                    "category": m.category,
                    "matched_text": m.matched_text,
                    "weight": m.weight,
                    "source": m.source,
                }
                for m in self.matches
            ],
        }


def quality_level_for(score: int, thresholds: Optional[Thresholds] = None) -> QualityLevel:
    """Walk the thresholds from highest to lowest. Bounds are inclusive."""
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if score >= thresholds.critical_score:
        return QualityLevel.CRITICAL
    if score >= thresholds.poor_score:
        return QualityLevel.POOR
    if score >= thresholds.warning_score:
        return QualityLevel.ACCEPTABLE
    if score >= GOOD_FLOOR:
        return QualityLevel.GOOD
    return QualityLevel.EXCELLENT


def classify(
    matches: Iterable[PatternMatch],
    thresholds: Optional[Thresholds] = None,
) -> DetectionResult:
    """
    Classify a scan's matches. Pure: no I/O, no mutation.

    Args:
        matches: Matches produced by the pattern matcher.
        thresholds: Profile thresholds. None = built-in defaults (50/30/15).

    Returns:
        DetectionResult with score, level and refusal/deflection flags.
    """
    matches = tuple(matches)
    score = sum(m.weight for m in matches)

    if len(matches) >= COMPOUND_MATCH_COUNT:
        score += COMPOUND_BONUS

    terminal = [m for m in matches if m.source == SOURCE_TERMINAL]
    has_educational_deflection = any(m.category == EDUCATIONAL_POSITIONING for m in terminal)
    if has_educational_deflection:
        score += EDUCATIONAL_DEFLECTION_BONUS

    has_direct_refusal = any(m.category == DIRECT_REFUSAL for m in terminal)

    return DetectionResult(
        matches=matches,
        severity_score=score,
        quality_level=quality_level_for(score, thresholds),
        has_direct_refusal=has_direct_refusal,
        has_educational_deflection=has_educational_deflection,
    )
