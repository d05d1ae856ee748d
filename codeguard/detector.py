"""
Detector — Pattern Matcher and Scan Orchestrator

Scans text against the pattern catalog and hands the matches to the
severity classifier. Two scan flavours:
  - code:  source buffers, code categories only
  - both:  transcripts, terminal categories plus embedded code

The scan is read-only and deterministic. Each rule is tried once
(first match, not find-all); different rules accumulate weight.
"""

from __future__ import annotations

import logging
from typing import Optional

from codeguard.patterns.catalog import (
    DEFAULT_CATALOG,
    DIRECT_REFUSAL,
    EDUCATIONAL_POSITIONING,
    SCAN_BOTH,
    SCAN_SOURCES,
    SOURCE_CODE,
    SOURCE_TERMINAL,
    PatternCatalog,
)
from codeguard.profiles import AggressivenessProfile, ProfileStore
from codeguard.scorer import DetectionResult, PatternMatch, classify

logger = logging.getLogger(__name__)


def match_patterns(
    text: str,
    catalog: PatternCatalog = DEFAULT_CATALOG,
    source: str = SCAN_BOTH,
    profile: Optional[AggressivenessProfile] = None,
) -> list[PatternMatch]:
    """
    Scan text against the selected side(s) of the catalog.

    Args:
        text: Arbitrary text. Empty text yields no matches.
        catalog: Compiled pattern catalog.
        source: "terminal" | "code" | "both".
        profile: When given, categories it disables are skipped entirely.

    Returns:
        One PatternMatch per rule that hit, in catalog order.
    """
    if source not in SCAN_SOURCES:
        raise ValueError(f"Unknown scan source: {source}")
    if not text:
        return []

    sides = (SOURCE_TERMINAL, SOURCE_CODE) if source == SCAN_BOTH else (source,)
    matches: list[PatternMatch] = []

    for side in sides:
        for category, rules in catalog.rules_for(side).items():
            if profile is not None and not profile.is_category_enabled(category, side):
                continue
            for rule in rules:
                found = rule.pattern.search(text)
                if found:
                    matches.append(PatternMatch(
                        category=category,
                        pattern=rule.pattern.pattern,
                        matched_text=found.group(0),
                        weight=rule.weight,
                        source=side,
                    ))
    return matches


class PatternDetector:
    """
    Binds a catalog to a profile store.

    The current profile is read once at the start of each scan, so a
    profile switch takes effect on the next scan and never mid-scan.
    """

    def __init__(
        self,
        catalog: PatternCatalog = DEFAULT_CATALOG,
        profiles: Optional[ProfileStore] = None,
    ):
        self.catalog = catalog
        self.profiles = profiles or ProfileStore()

    def detect(self, text: str, source: str = SCAN_BOTH) -> DetectionResult:
        profile = self.profiles.current
        matches = match_patterns(text, self.catalog, source, profile)
        result = classify(matches, profile.thresholds)
        if result.matches:
            logger.debug(
                "Scan complete: %d matches", len(result.matches),
                extra={
                    "severity_score": result.severity_score,
                    "quality_level": result.quality_level.value,
                    "profile": profile.key,
                },
            )
        return result

    def analyze_text(self, text: str) -> DetectionResult:
        """Transcript scan: terminal categories plus embedded code."""
        return self.detect(text, SCAN_BOTH)

    def analyze_code(self, code: str) -> DetectionResult:
        return self.detect(code, SOURCE_CODE)

    # --- Single-category probes (ignore the profile) ---

    def _any_rule(self, side: str, category: str, text: str) -> bool:
        rules = self.catalog.rules_for(side).get(category, ())
        return any(rule.pattern.search(text) for rule in rules)

    def has_direct_refusal(self, text: str) -> bool:
        return self._any_rule(SOURCE_TERMINAL, DIRECT_REFUSAL, text)

    def has_educational_positioning(self, text: str) -> bool:
        return self._any_rule(SOURCE_TERMINAL, EDUCATIONAL_POSITIONING, text)

    def has_security_issues(self, text: str) -> bool:
        return self._any_rule(SOURCE_CODE, "SECURITY_ISSUES", text)

    def has_typescript_bailouts(self, text: str) -> bool:
        return self._any_rule(SOURCE_CODE, "TYPESCRIPT_BAILOUTS", text)

    def pattern_stats(self) -> dict:
        return self.catalog.stats()
