"""
Pattern Catalog — Weighted Detection Rules

The catalog is the table the matcher scans against:
  1. Terminal categories: how an AI assistant avoids doing the work
     (refusal, educational deflection, scope reduction, ...)
  2. Code categories: what a lazy or unsafe buffer looks like
     (security holes, type-safety bailouts, debug leftovers, stubs)
  3. A weight per category

The built-in tables below are always available. An external JSON
document (see schemas/catalog.py) can replace them at startup; if it
is missing, unreadable or malformed the built-in catalog is used and
the failure is logged. Loading never raises.

Every rule is compiled once, case-insensitive. A rule that needs
case sensitivity opts back in locally with a scoped flag: (?-i:...).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from pydantic import ValidationError

from codeguard.schemas.catalog import CatalogDocument

logger = logging.getLogger(__name__)

SOURCE_TERMINAL = "terminal"
SOURCE_CODE = "code"
SCAN_BOTH = "both"
SCAN_SOURCES = (SOURCE_TERMINAL, SOURCE_CODE, SCAN_BOTH)

# Weight for a category that has no entry in the weight table
FALLBACK_WEIGHT = 3

# Categories the classifier treats specially
DIRECT_REFUSAL = "DIRECT_REFUSAL"
EDUCATIONAL_POSITIONING = "EDUCATIONAL_POSITIONING"


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class PatternRule:
    """One compiled match rule. Immutable once loaded."""
    category: str
    pattern: re.Pattern
    weight: int
    source: str  # "terminal" | "code"


@dataclass(frozen=True)
class PatternCatalog:
    """Compiled rules grouped by side and category, plus the weight table."""
    terminal_rules: Mapping[str, tuple[PatternRule, ...]]
    code_rules: Mapping[str, tuple[PatternRule, ...]]
    weights: Mapping[str, int]
    origin: str = "builtin"
    skipped_rules: tuple[str, ...] = field(default=())

    def weight_for(self, category: str) -> int:
        return self.weights.get(category, FALLBACK_WEIGHT)

    def rules_for(self, source: str) -> Mapping[str, tuple[PatternRule, ...]]:
        if source == SOURCE_TERMINAL:
            return self.terminal_rules
        if source == SOURCE_CODE:
            return self.code_rules
        raise ValueError(f"Unknown rule source: {source}")

    def stats(self) -> dict:
        return {
            "terminal_patterns": sum(len(r) for r in self.terminal_rules.values()),
            "code_patterns": sum(len(r) for r in self.code_rules.values()),
            "skipped_patterns": len(self.skipped_rules),
            "origin": self.origin,
        }


# ============================================================
# BUILT-IN RULES
# ============================================================

TERMINAL_PATTERNS: dict[str, list[str]] = {
    DIRECT_REFUSAL: [
        r"I cannot generate code for you",
        r"would be completing your work",
        r"learn programming instead",
        r"I won't write.*code",
        r"that would be doing your homework",
        r"cannot.*write.*code.*for.*you",
        r"won't.*complete.*your.*work",
        r"ensures you understand the system",
    ],
    EDUCATIONAL_POSITIONING: [
        r"this will help you learn",
        r"good learning exercise",
        r"I encourage you to",
        r"figure out yourself",
        r"research how to",
        r"try.*implementing.*yourself",
        r"learn.*by.*doing",
        r"educational.*purposes",
        r"so you can maintain it properly",
    ],
    "COMPLEXITY_AVOIDANCE": [
        r"this is quite complex",
        r"would require significant",
        r"beyond the scope",
        r"too complicated to",
        r"challenging to implement",
        r"quite.*complex.*to",
        r"very.*difficult.*to",
        r"extremely.*complex",
    ],
    "SCOPE_REDUCTION": [
        r"let me provide a simpler",
        r"here's a basic",
        r"starting with a simple",
        r"minimal implementation",
        r"let.*me.*simplify",
        r"I'll.*simplify",
        r"simplified.*version",
        r"basic.*approach",
        r"simple.*solution",
        r"rough.*implementation",
        r"skeleton.*code",
        r"placeholder.*implementation",
    ],
    "SIMPLIFICATION_LANGUAGE": [
        r"\bsimpl(?:e|er|ify|ified)",
        r"basic.*approach",
        r"minimal.*version",
        r"rough.*sketch",
        r"quick.*example",
        r"straightforward.*way",
        r"easy.*solution",
        r"light.*implementation",
        r"stripped.*down",
        r"bare.*bones",
        r"proof.*of.*concept",
        r"for brevity",
        r"to keep it simple",
    ],
    "RESPONSIBILITY_TRANSFER": [
        r"you'll need to add",
        r"adapt this to your",
        r"depending on your requirements",
        r"you should implement",
        r"left as an exercise",
        r"you.*will.*need.*to",
        r"up.*to.*you.*to",
        r"your.*responsibility.*to",
        r"you.*can.*extend",
        r"feel.*free.*to.*modify",
        r"adapt.*to.*your.*specific.*use case",
    ],
    "CONTEXT_DEFLECTION": [
        r"without understanding your broader architecture",
        r"insufficient context",
        r"can only provide.*basic example",
        r"depends on your specific",
        r"need more information about",
        r"unclear about your requirements",
        r"without seeing your full",
        r"varies by implementation",
        r"specific to your use case",
        r"hard to say without",
        r"would need more details",
    ],
    "PRODUCTION_DEFLECTION": [
        r"for production use",
        r"you'll want to enhance this",
        r"production-ready.*requires",
        r"you should enhance this for production",
        r"not production ready",
        r"you'll probably need to",
        r"may require adjustments",
        r"should work in most cases",
        r"consider this a starting point",
    ],
    "PLANNING_LANGUAGE": [
        r"careful planning",
        r"step-by-step approach",
        r"break.*down.*into.*phases",
        r"analyze.*before.*implementing",
        r"plan implementation",
        r"design architecture",
        r"preliminary analysis",
    ],
    "SUBAGENT_DELEGATION": [
        r"creating.*subagent",
        r"delegating to.*agent",
        r"spawning.*helper",
        r"using.*specialized agent",
        r"sub-task.*assigned",
        r"breaking this into.*agents",
        r"routing to.*specialist",
        r"coordinating with.*subagent",
    ],
    "SUBAGENT_BAILOUTS": [
        r"subagent.*couldn['\u2019]t complete",
        r"delegated agent.*simplified",
        r"sub-task.*too complex",
        r"specialist.*provided basic",
        r"helper.*partial implementation",
        r"coordinator.*reduced scope",
    ],
    "TIME_EXCUSES": [
        r"for the sake of time",
        r"to keep this brief",
        r"in the interest of brevity",
        r"due to space constraints",
        r"to save time",
        r"quickly thrown together",
        r"rushed implementation",
    ],
    "PROGRESS_STALLING": [
        r"let me think about this",
        r"this is tricky",
        r"hmm, this might be",
        r"actually, let me",
        r"on second thought",
        r"perhaps a different approach",
        r"maybe we should",
        r"alternatively",
    ],
}

CODE_PATTERNS: dict[str, list[str]] = {
    "SECURITY_ISSUES": [
        r"\beval\(",
        r"innerHTML\s*=",
        r"document\.write",
        r"dangerouslySetInnerHTML",
    ],
    "TYPESCRIPT_BAILOUTS": [
        r"\bas\s+any\b",
        r"@ts-ignore",
        r":\s*any[^a-zA-Z]",
        r"(?-i:\bFunction\(\))",
        r"\bany\[\]",
        r"Record<string,\s*any>",
    ],
    "PRODUCTION_ISSUES": [
        r"console\.log",
        r"console\.warn",
        r"debugger;",
        r"\balert\(",
        r"TODO:",
        r"FIXME:",
        r"HACK:",
    ],
    "CODE_QUALITY_ISSUES": [
        r"placeholder",
        r"stub.*function",
        r"mock.*implementation",
        r"temporary.*solution",
        r"quick.*fix",
        r"not.*implemented",
        r"TODO.*implement",
        r"empty.*implementation",
    ],
}

PATTERN_WEIGHTS: dict[str, int] = {
    # Terminal
    DIRECT_REFUSAL: 20,
    EDUCATIONAL_POSITIONING: 15,
    "CONTEXT_DEFLECTION": 22,
    "SUBAGENT_BAILOUTS": 18,
    "PRODUCTION_DEFLECTION": 18,
    "COMPLEXITY_AVOIDANCE": 15,
    "PLANNING_LANGUAGE": 15,
    "SCOPE_REDUCTION": 12,
    "SUBAGENT_DELEGATION": 12,
    "SIMPLIFICATION_LANGUAGE": 10,
    "RESPONSIBILITY_TRANSFER": 8,
    "TIME_EXCUSES": 5,
    "PROGRESS_STALLING": 4,
    # Code
    "SECURITY_ISSUES": 20,
    "TYPESCRIPT_BAILOUTS": 15,
    "PRODUCTION_ISSUES": 10,
    "CODE_QUALITY_ISSUES": 8,
}


# ============================================================
# COMPILATION
# ============================================================

def _compile_side(
    source: str,
    patterns: Mapping[str, list[str]],
    weights: Mapping[str, int],
    skipped: list[str],
) -> dict[str, tuple[PatternRule, ...]]:
    compiled: dict[str, tuple[PatternRule, ...]] = {}
    for category, regexes in patterns.items():
        weight = weights.get(category, FALLBACK_WEIGHT)
        rules = []
        for regex in regexes:
            try:
                pattern = re.compile(regex, re.IGNORECASE)
            except re.error as e:
                # A broken rule never takes the rest of the catalog down
                logger.warning(
                    "Skipping rule %r in %s: %s", regex, category, e,
                    extra={"category": category, "error": str(e)},
                )
                skipped.append(f"{source}:{category}:{regex}")
                continue
            rules.append(PatternRule(
                category=category, pattern=pattern, weight=weight, source=source,
            ))
        if rules:
            compiled[category] = tuple(rules)
    return compiled


def compile_catalog(
    terminal: Mapping[str, list[str]],
    code: Mapping[str, list[str]],
    weights: Mapping[str, int],
    origin: str = "builtin",
) -> PatternCatalog:
    """Compile raw regex tables into an immutable catalog."""
    skipped: list[str] = []
    terminal_rules = _compile_side(SOURCE_TERMINAL, terminal, weights, skipped)
    code_rules = _compile_side(SOURCE_CODE, code, weights, skipped)
    return PatternCatalog(
        terminal_rules=MappingProxyType(terminal_rules),
        code_rules=MappingProxyType(code_rules),
        weights=MappingProxyType(dict(weights)),
        origin=origin,
        skipped_rules=tuple(skipped),
    )


DEFAULT_CATALOG = compile_catalog(TERMINAL_PATTERNS, CODE_PATTERNS, PATTERN_WEIGHTS)


def load_catalog(path: Optional[Union[str, Path]] = None) -> PatternCatalog:
    """
    Load the pattern catalog from an external JSON document.

    Falls back to DEFAULT_CATALOG when no path is configured, or when the
    document is missing, unreadable, not JSON, fails validation, or holds
    no usable rule. Never raises.
    """
    if not path:
        return DEFAULT_CATALOG

    try:
        raw = Path(path).read_text(encoding="utf-8")
        document = CatalogDocument.model_validate(json.loads(raw))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(
            "Pattern catalog %s unusable, using built-in catalog: %s", path, e,
            extra={"error": type(e).__name__},
        )
        return DEFAULT_CATALOG

    catalog = compile_catalog(
        document.terminal, document.code, document.weights, origin=str(path),
    )
    if not catalog.terminal_rules and not catalog.code_rules:
        logger.warning(
            "Pattern catalog %s holds no usable rules, using built-in catalog", path,
            extra={"error": "empty_catalog"},
        )
        return DEFAULT_CATALOG

    logger.info("Loaded pattern catalog from %s", path, extra=catalog.stats())
    return catalog
