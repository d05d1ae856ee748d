"""
Report Schemas

Pydantic models for the human-readable quality report. The report is
a projection of a DetectionResult onto source lines. It is derived data,
rebuilt whenever a report or fix request is needed.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

IssueSeverity = Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]
IssueCategory = Literal["SECURITY", "TYPE_SAFETY", "PRODUCTION", "IMPLEMENTATION", "GENERAL"]


class IssueExample(BaseModel):
    current: str
    suggested: str


class QualityIssue(BaseModel):
    line: int = Field(..., ge=1)
    column: int = Field(..., ge=1)
    category: IssueCategory
    severity: IssueSeverity
    pattern: str
    problem: str
    instruction: str
    example: Optional[IssueExample] = None


class QualityIssueReport(BaseModel):
    file: str
    total_issues: int
    critical_count: int
    high_count: int
    issues: list[QualityIssue]
    ai_instruction: str
