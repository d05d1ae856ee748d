"""
Intervention Policy — Verdict to Action

Maps a detection result plus the event that triggered the analysis
to one of four actions:

  BLOCK           reject the save (critical + saving + blocking allowed)
  SIGNAL_FOR_FIX  ask for a fix (critical otherwise, or POOR-and-above)
  WARNING         queue a low-urgency notification
  NONE            nothing to do

The score floors below apply under every profile; only the level
boundaries move with the profile thresholds.
"""

from __future__ import annotations

from enum import Enum

from codeguard.profiles import AggressivenessProfile
from codeguard.scorer import DetectionResult, QualityLevel

# Score at or above which a fix is requested regardless of level
SIGNAL_SCORE_FLOOR = 25
# Score at or above which a warning is queued
WARNING_SCORE_FLOOR = 10


class TriggerType(str, Enum):
    TYPED = "typed"
    SAVED = "saved"
    FOCUSED = "focused"
    MANUAL = "manual"


class InterventionLevel(str, Enum):
    NONE = "NONE"
    WARNING = "WARNING"
    SIGNAL_FOR_FIX = "SIGNAL_FOR_FIX"
    BLOCK = "BLOCK"


def decide_intervention(
    result: DetectionResult,
    trigger: TriggerType,
    profile: AggressivenessProfile,
    block_saves: bool = True,
) -> InterventionLevel:
    """
    Decide the action for one analysis.

    Args:
        result: Classified scan.
        trigger: Event that prompted the analysis.
        profile: Profile active when the scan started.
        block_saves: Host-level switch (blockCriticalSaves); a BLOCK needs
            both this and the profile's block_saves flag.
    """
    if result.quality_level == QualityLevel.CRITICAL:
        if trigger == TriggerType.SAVED and block_saves and profile.behavior.block_saves:
            return InterventionLevel.BLOCK
        return InterventionLevel.SIGNAL_FOR_FIX

    if (
        result.quality_level.at_least(QualityLevel.POOR)
        or result.severity_score >= SIGNAL_SCORE_FLOOR
    ):
        return InterventionLevel.SIGNAL_FOR_FIX

    if result.severity_score >= WARNING_SCORE_FLOOR:
        return InterventionLevel.WARNING

    return InterventionLevel.NONE
