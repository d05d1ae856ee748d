"""
Quality Report Builder

Projects a DetectionResult onto the lines of the analyzed buffer and
renders it for people (read-only panel) and for the assistant
(correction instruction sent to the terminal).

Category metadata is a closed mapping over the known code categories;
anything else lands in the GENERAL / LOW default arm.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from html import escape
from pathlib import PurePath
from typing import Callable, Optional

from codeguard.config import GuardConfig
from codeguard.profiles import AggressivenessProfile, Capability
from codeguard.schemas.report import IssueExample, QualityIssue, QualityIssueReport
from codeguard.scorer import DetectionResult


class MatchCategory(str, Enum):
    SECURITY_ISSUES = "SECURITY_ISSUES"
    TYPESCRIPT_BAILOUTS = "TYPESCRIPT_BAILOUTS"
    PRODUCTION_ISSUES = "PRODUCTION_ISSUES"
    CODE_QUALITY_ISSUES = "CODE_QUALITY_ISSUES"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, category: str) -> "MatchCategory":
        try:
            return cls(category)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class IssueTemplate:
    category: str
    severity: str
    problem: str
    instruction: str
    suggest: Optional[Callable[[str], str]] = None


def _security_suggestion(match: str) -> str:
    if "eval" in match.lower():
        return "JSON.parse(validatedInput)"
    if "innerhtml" in match.lower():
        return "element.textContent = sanitizedText"
    return "Use parameterized queries"


def _production_suggestion(match: str) -> str:
    return "logger.debug(...)" if "console" in match.lower() else "Remove debugger statements"


ISSUE_TEMPLATES: dict[MatchCategory, IssueTemplate] = {
    MatchCategory.SECURITY_ISSUES: IssueTemplate(
        category="SECURITY",
        severity="CRITICAL",
        problem="Security vulnerability detected - code execution risk",
        instruction="Replace with secure alternative that validates and sanitizes input",
        suggest=_security_suggestion,
    ),
    MatchCategory.TYPESCRIPT_BAILOUTS: IssueTemplate(
        category="TYPE_SAFETY",
        severity="HIGH",
        problem="Type safety violation - bypasses TypeScript checking",
        instruction="Define proper interface and use specific typing instead of any",
        suggest=lambda _: "Define: interface ApiResponse { data: T[]; status: string; }",
    ),
    MatchCategory.PRODUCTION_ISSUES: IssueTemplate(
        category="PRODUCTION",
        severity="MEDIUM",
        problem="Debug code in production - not suitable for deployment",
        instruction="Remove debug statements and replace with proper logging",
        suggest=_production_suggestion,
    ),
    MatchCategory.CODE_QUALITY_ISSUES: IssueTemplate(
        category="IMPLEMENTATION",
        severity="MEDIUM",
        problem="Incomplete implementation - placeholder code detected",
        instruction="Complete the implementation with proper business logic and error handling",
        suggest=lambda _: "Implement full functionality with try/catch error handling",
    ),
    MatchCategory.OTHER: IssueTemplate(
        category="GENERAL",
        severity="LOW",
        problem="Code quality issue detected",
        instruction="Review and improve following best practices",
    ),
}


def issue_for(category: str, match: str, line: int, column: int) -> QualityIssue:
    template = ISSUE_TEMPLATES[MatchCategory.parse(category)]
    example = None
    if template.suggest is not None:
        example = IssueExample(current=match, suggested=template.suggest(match))
    return QualityIssue(
        line=line,
        column=column,
        category=template.category,
        severity=template.severity,
        pattern=match,
        problem=template.problem,
        instruction=template.instruction,
        example=example,
    )


def _locate(lines: list[str], fragment: str) -> tuple[int, int]:
    """1-based (line, column) of the first line containing fragment, else (1, 1)."""
    for index, line in enumerate(lines):
        column = line.find(fragment)
        if column >= 0:
            return index + 1, column + 1
    return 1, 1


def extract_issues(detection: DetectionResult, text: str) -> list[QualityIssue]:
    lines = text.split("\n")
    issues = []
    for match in detection.matches:
        line, column = _locate(lines, match.matched_text)
        issues.append(issue_for(match.category, match.matched_text, line, column))
    return issues


def build_report(detection: DetectionResult, file_path: str, text: str) -> QualityIssueReport:
    """Build the line-level report for one analyzed buffer."""
    file_name = PurePath(file_path).name or "Unknown"
    issues = extract_issues(detection, text)
    return QualityIssueReport(
        file=file_name,
        total_issues=len(issues),
        critical_count=sum(1 for i in issues if i.severity == "CRITICAL"),
        high_count=sum(1 for i in issues if i.severity == "HIGH"),
        issues=issues,
        ai_instruction=build_ai_instruction(issues, file_name),
    )


# ============================================================
# RENDERING
# ============================================================

def _format_section(title: str, issues: list[QualityIssue], include_details: bool) -> str:
    if not issues:
        return ""
    section = f"{title} ({len(issues)}):\n"
    for issue in issues:
        section += f"Line {issue.line}: {issue.problem}\n"
        if include_details:
            section += f"Required: {issue.instruction}\n"
            if issue.example:
                section += f"Current: {issue.example.current}\n"
                section += f"Suggested: {issue.example.suggested}\n"
        else:
            section += f"{issue.category} - {issue.instruction}\n"
    return section + "\n"


def build_ai_instruction(issues: list[QualityIssue], file_name: str) -> str:
    """Correction request addressed to the assistant, grouped by severity."""
    critical = [i for i in issues if i.severity == "CRITICAL"]
    high = [i for i in issues if i.severity == "HIGH"]
    medium = [i for i in issues if i.severity == "MEDIUM"]

    instruction = f"CODE QUALITY ISSUES DETECTED in {file_name}:\n\n"
    instruction += _format_section("CRITICAL SECURITY ISSUES", critical, True)
    instruction += _format_section("HIGH PRIORITY ISSUES", high, False)
    instruction += _format_section("MEDIUM PRIORITY ISSUES", medium, False)
    instruction += (
        "Please rewrite the affected sections with production-ready code "
        "that follows security and quality best practices."
    )
    return instruction


_REPORT_STYLE = """
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 20px; }
        .critical { background: #ffe6e6; border-left: 4px solid #ff4444; }
        .high { background: #fff4e6; border-left: 4px solid #ff8800; }
        .medium { background: #e6f3ff; border-left: 4px solid #0088ff; }
        .low { background: #f4f4f4; border-left: 4px solid #999999; }
        .issue { margin: 10px 0; padding: 15px; border-radius: 5px; }
        .line { font-weight: bold; color: #666; }"""


def render_html(report: QualityIssueReport) -> str:
    """HTML body for the read-only report panel. All report text is escaped."""
    blocks = []
    for issue in report.issues:
        example = ""
        if issue.example:
            example = (
                f"<p><strong>Current:</strong> <code>{escape(issue.example.current)}</code></p>"
                f"<p><strong>Suggested:</strong> <code>{escape(issue.example.suggested)}</code></p>"
            )
        blocks.append(
            f'<div class="issue {issue.severity.lower()}">'
            f'<div class="line">Line {issue.line}: {escape(issue.category)}</div>'
            f"<p><strong>Problem:</strong> {escape(issue.problem)}</p>"
            f"<p><strong>Solution:</strong> {escape(issue.instruction)}</p>"
            f"{example}</div>"
        )

    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<style>"
        f"{_REPORT_STYLE}\n</style>\n</head>\n<body>\n"
        f"<h1>Quality Report: {escape(report.file)}</h1>\n"
        f"<p><strong>Total Issues:</strong> {report.total_issues} "
        f"(Critical: {report.critical_count}, High: {report.high_count})</p>\n"
        + "\n".join(blocks)
        + "\n</body>\n</html>"
    )


def _check(flag: bool) -> str:
    return "yes" if flag else "no"


def describe_configuration(config: GuardConfig, profile: AggressivenessProfile) -> str:
    """Markdown status report of the monitoring configuration and active profile."""
    t = profile.thresholds
    b = profile.behavior
    lines = [
        "# Code Guard Configuration",
        "",
        "## Current Settings",
        f"- **Monitoring Mode**: {config.monitoring_mode}",
        f"- **Aggressiveness**: {profile.name}",
        f"- **Auto-Intervention**: {_check(config.auto_intervention and b.auto_intervention_enabled)}",
        f"- **Block Saves**: {_check(config.block_critical_saves and b.block_saves)}",
        "",
        f"## {profile.name} Profile Details",
        profile.description,
        "",
        "### Thresholds",
        f"- **Critical Score**: {t.critical_score}+",
        f"- **Poor Score**: {t.poor_score}+",
        f"- **Warning Score**: {t.warning_score}+",
        f"- **Auto-Intervention**: {t.auto_intervention_score}+",
        "",
        "### Enabled Patterns",
    ]
    lines.extend(
        f"- **{cap.value}**: {_check(profile.is_pattern_enabled(cap))}" for cap in Capability
    )
    lines.extend([
        "",
        "### Behavior",
        f"- **Show Notifications**: {_check(b.show_notifications)}",
        f"- **Detailed Reports**: {_check(b.detailed_reports)}",
        "",
        "## Active Monitoring",
        f"- **File Watcher**: {_check(config.is_file_watcher_enabled())}",
        f"- **Terminal Monitor**: {_check(config.is_terminal_monitoring_enabled())}",
    ])
    return "\n".join(lines)
