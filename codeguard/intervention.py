"""
Intervention Engine — Dispatching Decided Actions

Turns a quality report into host calls:
  - automatic correction: the report's instruction is typed into the
    assistant's terminal, gated by the file-save CooldownGate
  - user-approved fix: a message with Request AI Fix / Show Details / Ignore
  - critical block: a modal error shown before a save is rejected

A BLOCK reaches the host's save pipeline as SaveBlockedError, the only
failure the core ever raises at an external trigger.
"""

from __future__ import annotations

import logging
from typing import Optional

from codeguard.config import GuardConfig
from codeguard.cooldown import CooldownGate
from codeguard.hosts import TerminalLocator, UIHost, no_terminal
from codeguard.profiles import AggressivenessProfile
from codeguard.report import render_html
from codeguard.schemas.report import QualityIssueReport
from codeguard.scorer import DetectionResult, QualityLevel

logger = logging.getLogger(__name__)

REQUEST_FIX = "Request AI Fix"
SHOW_DETAILS = "Show Details"
IGNORE = "Ignore"


class SaveBlockedError(RuntimeError):
    """Raised from the pre-save handler when a save must be rejected."""

    def __init__(self, report: QualityIssueReport):
        self.report = report
        super().__init__(
            f"CRITICAL CODE ISSUES: {report.critical_count} issues must be fixed before saving."
        )


class InterventionEngine:
    """
    Dispatches file-level interventions to the UI and terminal hosts.

    Args:
        ui: Editor surface for messages and report panels.
        terminals: Returns the active assistant terminal, or None.
        gate: Cooldown gate for automatic corrections.
        config: Monitoring configuration (auto-intervention switch).
    """

    def __init__(
        self,
        ui: UIHost,
        terminals: TerminalLocator = no_terminal,
        gate: Optional[CooldownGate] = None,
        config: Optional[GuardConfig] = None,
    ):
        self.ui = ui
        self.terminals = terminals
        self.gate = gate or CooldownGate("file", 30.0)
        self.config = config or GuardConfig()
        self.auto_interventions = 0
        self.corrections_sent = 0

    def should_auto_intervene(self, detection: DetectionResult, profile: AggressivenessProfile) -> bool:
        return (
            self.config.auto_intervention
            and profile.should_auto_intervene(detection.severity_score)
            and detection.quality_level == QualityLevel.CRITICAL
            and self.gate.can_fire()
            and self.terminals() is not None
        )

    async def perform_automatic(self, report: QualityIssueReport, detailed: bool = True) -> None:
        """Send the correction unprompted. Falls back to asking when the gate refuses or the terminal is gone."""
        if not self.gate.try_acquire():
            await self.request_user_fix(report, detailed)
            return

        try:
            if not await self.send_correction(report):
                self.gate.release()
                await self.request_user_fix(report, detailed)
                return
            self.auto_interventions += 1
            self.gate.schedule_release()
        except Exception as e:
            logger.error(
                "Automatic intervention failed: %s", e,
                extra={"file_path": report.file, "error": type(e).__name__},
            )
            self.gate.release()

    async def request_user_fix(self, report: QualityIssueReport, detailed: bool = True) -> None:
        choices = [REQUEST_FIX, SHOW_DETAILS, IGNORE] if detailed else [REQUEST_FIX, IGNORE]
        choice = await self.ui.show_message(
            f"{report.total_issues} quality issues found in {report.file}", choices,
        )
        if choice == REQUEST_FIX:
            await self.send_correction(report)
        elif choice == SHOW_DETAILS:
            await self.show_detailed_report(report)
        else:
            logger.info(
                "User ignored %d quality issues", report.total_issues,
                extra={"file_path": report.file},
            )

    async def show_critical_block(self, report: QualityIssueReport) -> None:
        choice = await self.ui.show_blocking_error(
            f"CRITICAL CODE ISSUES ({report.critical_count}) - Save blocked until fixed",
            [REQUEST_FIX, SHOW_DETAILS],
        )
        if choice == REQUEST_FIX:
            await self.send_correction(report)
        elif choice == SHOW_DETAILS:
            await self.show_detailed_report(report)

    async def send_correction(self, report: QualityIssueReport) -> bool:
        """Type the correction request into the active terminal. False when there is none."""
        terminal = self.terminals()
        if terminal is None:
            logger.warning(
                "No terminal found - correction for %s not sent", report.file,
                extra={"file_path": report.file, "intervention": "correction"},
            )
            return False

        logger.info(
            "Sending AI correction request for %s", report.file,
            extra={"file_path": report.file, "intervention": "correction"},
        )
        await terminal.send_text(f"# AI Quality Issue Report for {report.file}")
        await terminal.send_text(report.ai_instruction)
        await terminal.show()
        self.corrections_sent += 1
        await self.ui.show_message(f"AI correction requested for {report.total_issues} issues")
        return True

    async def show_detailed_report(self, report: QualityIssueReport) -> None:
        await self.ui.open_read_only_panel(f"Quality Report: {report.file}", render_html(report))
