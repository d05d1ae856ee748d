"""
Pattern Document Schemas

Pydantic models for the external JSON documents that replace the
built-in pattern tables. A document that fails validation is never
used. The loaders fall back to the built-in tables instead.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CatalogDocument(BaseModel):
    """Pattern catalog: category -> regex list, per side, plus weights."""

    terminal: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Conversation/transcript categories and their regex rules.",
    )
    code: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Source-code categories and their regex rules.",
    )
    weights: dict[str, int] = Field(
        default_factory=dict,
        description="Category weight. Categories without one use the fallback weight.",
    )

    model_config = {"json_schema_extra": {"examples": [
        {
            "terminal": {"DIRECT_REFUSAL": ["I cannot generate code for you"]},
            "code": {"SECURITY_ISSUES": [r"eval\("]},
            "weights": {"DIRECT_REFUSAL": 20, "SECURITY_ISSUES": 20},
        },
    ]}}


class AvoidanceTiers(BaseModel):
    HIGH: list[str] = Field(default_factory=list)
    MEDIUM: list[str] = Field(default_factory=list)
    LOW: list[str] = Field(default_factory=list)


class TierWeights(BaseModel):
    HIGH: int = 15
    MEDIUM: int = 10
    LOW: int = 5


class TodoPatternDocument(BaseModel):
    """Implementation-avoidance phrases for todo/task-list content."""

    model_config = ConfigDict(populate_by_name=True)

    implementation_avoidance: AvoidanceTiers = Field(..., alias="implementationAvoidance")
    weights: TierWeights = Field(default_factory=TierWeights)
    intervention_threshold: int = Field(25, ge=1, alias="interventionThreshold")
