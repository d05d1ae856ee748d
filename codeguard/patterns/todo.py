"""
Todo Analyzer — Implementation Avoidance in Task Lists

An assistant that writes "create mock service" or "plan implementation"
into its todo list is scheduling the avoidance before it happens. Each
phrase belongs to a tier (HIGH / MEDIUM / LOW) whose weight it adds
once when present; the summed score decides the severity.

Phrases match case-insensitively with flexible whitespace. The phrase
tiers, weights and threshold come from an external JSON document when
one is configured, else from the built-in tables below.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from codeguard.schemas.catalog import AvoidanceTiers, TierWeights, TodoPatternDocument

logger = logging.getLogger(__name__)

MEDIUM_SCORE_FLOOR = 15
TIERS = ("HIGH", "MEDIUM", "LOW")

DEFAULT_TODO_PATTERNS = TodoPatternDocument(
    implementation_avoidance=AvoidanceTiers(
        HIGH=[
            # Planning instead of building
            "analyze existing", "research approach", "plan implementation",
            "design architecture", "set up basic structure", "careful planning",
            "understand requirements", "study the codebase", "preliminary analysis",
            "investigate current", "evaluate options", "determine best approach",
            "assess feasibility", "gather requirements", "create strategy", "develop plan",
            # Mocks, stubs and placeholders
            "create mock", "implement mock", "mock implementation", "mock service",
            "mock data", "create stub", "stub implementation", "stub function",
            "placeholder implementation", "placeholder function", "temporary implementation",
            "dummy implementation", "dummy data", "fake implementation",
            "skeleton implementation",
            # Scope reduction
            "for now", "just create basic", "just implement simple", "just add basic",
        ],
        MEDIUM=[
            "add proper error handling", "enhance for production", "write comprehensive tests",
            "optimize performance", "improve documentation", "refactor existing", "add validation",
        ],
        LOW=["basic implementation", "simple approach"],
    ),
    weights=TierWeights(),
    intervention_threshold=25,
)


@dataclass(frozen=True)
class TodoAnalysis:
    severity: str
    patterns: list[str] = field(default_factory=list)
    score: int = 0


def _phrase_regex(phrase: str) -> re.Pattern:
    words = phrase.split()
    return re.compile(r"\s+".join(re.escape(w) for w in words), re.IGNORECASE)


class TodoAnalyzer:
    """Scores todo/task content against the tiered phrase tables."""

    def __init__(self, document: TodoPatternDocument = DEFAULT_TODO_PATTERNS):
        self.document = document
        self.threshold = document.intervention_threshold
        self._rules: list[tuple[str, str, re.Pattern, int]] = []
        for tier in TIERS:
            weight = getattr(document.weights, tier)
            for phrase in getattr(document.implementation_avoidance, tier):
                if phrase.strip():
                    self._rules.append((tier, phrase, _phrase_regex(phrase), weight))

    def analyze(self, content: str) -> TodoAnalysis:
        if not content:
            return TodoAnalysis(severity="LOW")

        score = 0
        found: list[str] = []
        for _tier, phrase, regex, weight in self._rules:
            if regex.search(content):
                score += weight
                found.append(phrase)

        if score >= self.threshold:
            severity = "HIGH"
        elif score >= MEDIUM_SCORE_FLOOR:
            severity = "MEDIUM"
        else:
            severity = "LOW"
        return TodoAnalysis(severity=severity, patterns=found, score=score)

    def should_trigger_intervention(self, analysis: TodoAnalysis) -> bool:
        return analysis.severity == "HIGH" and analysis.score >= self.threshold


def load_todo_patterns(path: Optional[Union[str, Path]] = None) -> TodoPatternDocument:
    """Load the phrase tables. Any failure logs a warning and returns the built-ins."""
    if not path:
        return DEFAULT_TODO_PATTERNS

    try:
        raw = Path(path).read_text(encoding="utf-8")
        document = TodoPatternDocument.model_validate(json.loads(raw))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(
            "Todo patterns %s unusable, using built-in phrases: %s", path, e,
            extra={"error": type(e).__name__},
        )
        return DEFAULT_TODO_PATTERNS

    logger.info("Loaded todo patterns from %s", path)
    return document


# ============================================================
# CORRECTION MESSAGES
# ============================================================

class AvoidanceCategory(str, Enum):
    MOCK_STUB = "Mock/Stub/Placeholder Usage"
    PLANNING = "Planning Instead of Implementation"
    SCOPE_REDUCTION = "Scope Reduction"
    ANALYSIS = "Analysis Avoidance"
    GENERAL = "General Implementation Avoidance"


# Checked in order; the first hit wins
_CATEGORY_KEYWORDS: list[tuple[AvoidanceCategory, re.Pattern]] = [
    (AvoidanceCategory.MOCK_STUB, re.compile(r"mock|stub|placeholder|dummy|fake|skeleton|temporary")),
    (AvoidanceCategory.PLANNING, re.compile(r"plan|design|architecture|strategy|approach|analyze|research")),
    (AvoidanceCategory.SCOPE_REDUCTION, re.compile(r"basic|simple|minimal|quick|for now|just")),
    (AvoidanceCategory.ANALYSIS, re.compile(r"investigate|evaluate|assess|understand|study")),
]

_SUGGESTIONS = {
    AvoidanceCategory.MOCK_STUB: [
        "- REPLACE all mocks/stubs/placeholders with actual implementation",
        "- Write real business logic, not temporary functions",
        "- Implement complete data processing, not dummy returns",
    ],
    AvoidanceCategory.PLANNING: [
        "- STOP planning - write the actual code implementation",
        "- Convert your architectural ideas into working functions",
        "- Implement the complete feature, not just the structure",
    ],
    AvoidanceCategory.SCOPE_REDUCTION: [
        "- IMPLEMENT the full feature scope as requested",
        '- Don\'t reduce to "basic" or "simple" versions',
        "- Include all edge cases and error scenarios",
    ],
    AvoidanceCategory.ANALYSIS: [
        "- ANALYZE the actual requirements and implement solutions",
        "- Research the proper approach AND implement it",
        "- Provide working code that addresses the real problem",
    ],
}


def categorize(phrase: str) -> AvoidanceCategory:
    lowered = phrase.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if keywords.search(lowered):
            return category
    return AvoidanceCategory.GENERAL


def group_patterns(patterns: list[str]) -> dict[AvoidanceCategory, list[str]]:
    groups: dict[AvoidanceCategory, list[str]] = {}
    for phrase in patterns:
        groups.setdefault(categorize(phrase), []).append(phrase)
    return groups


def build_correction_message(patterns: list[str], content: str = "") -> str:
    """Correction prompt typed into the assistant's terminal."""
    groups = group_patterns(patterns)

    suggestions: list[str] = []
    for category, phrases in groups.items():
        if category is AvoidanceCategory.GENERAL:
            suggestions.append(f"- Address the specific avoidance: {', '.join(phrases)}")
            suggestions.append("- Provide complete, working implementation")
        else:
            suggestions.extend(_SUGGESTIONS[category])

    lowered = content.lower()
    if "basic" in lowered or "simple" in lowered:
        suggestions.append('- AVOID "basic" or "simple" implementations - build the full feature')
    if "for now" in lowered:
        suggestions.append('- ELIMINATE "for now" mentality - implement the complete solution')
    if "mock" in lowered or "stub" in lowered:
        suggestions.append("- REPLACE all mocking with real integration and business logic")

    lines = [
        "QUALITY INTERVENTION: Implementation avoidance patterns detected - "
        "providing specific corrections:",
        "",
        "DETECTED ISSUES:",
        *(f"- {category.value}: {', '.join(phrases)}" for category, phrases in groups.items()),
        "",
        "REQUIRED ACTIONS:",
        *suggestions,
        "",
        "QUALITY EXPECTATIONS:",
        "- Provide working, production-ready code implementation",
        "- Include proper error handling and edge cases",
        "- Use appropriate types (no 'as any')",
        "- Write complete functionality, not placeholders",
        "",
        "Generate the complete implementation NOW. No planning phases, no TODOs, "
        'no "you\'ll need to add" statements.',
    ]
    return "\n".join(lines)
