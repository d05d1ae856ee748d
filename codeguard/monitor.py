"""
File Monitor — Editor Buffer Triggers

Entry points the editor host calls:

  on_text_changed      debounced by the typing delay, per path
  on_will_save         synchronous gate on the save; may raise SaveBlockedError
  on_saved             re-analysis half a second after the save lands
  on_focused           analysis when a buffer becomes active
  analyze_current      manual summary
  request_fixes        manual fix request
  show_quality_report  manual report panel

Only code files are analyzed, empty buffers never are, and realtime
analyses of one path are throttled to one per second.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Optional

from codeguard.config import GuardConfig
from codeguard.debounce import Debouncer
from codeguard.detector import PatternDetector
from codeguard.intervention import InterventionEngine, SaveBlockedError
from codeguard.notifications import Notification, NotificationKind, NotificationQueue
from codeguard.policy import InterventionLevel, TriggerType, decide_intervention
from codeguard.profiles import AggressivenessProfile
from codeguard.report import build_report
from codeguard.schemas.report import QualityIssueReport
from codeguard.scorer import DetectionResult

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = (
    ".ts", ".js", ".tsx", ".jsx", ".py", ".java", ".cpp", ".c",
    ".cs", ".php", ".rb", ".go", ".rs",
)
MIN_ANALYSIS_INTERVAL = 1.0
SAVE_ANALYSIS_DELAY = 0.5
HISTORY_LIMIT = 10


@dataclass(frozen=True)
class FileAnalysis:
    file_path: str
    timestamp: float
    detection: DetectionResult
    trigger: TriggerType
    intervention: InterventionLevel
    profile: AggressivenessProfile


def is_code_file(path: str) -> bool:
    return path.endswith(CODE_EXTENSIONS)


class FileMonitor:
    """
    Analyzes editor buffers and dispatches the decided interventions.

    Args:
        detector: Pattern detector bound to the shared profile store.
        engine: Intervention dispatcher (owns the file-save gate).
        queue: Notification queue for warnings.
        config: Monitoring configuration.
        clock: Monotonic clock used for the per-path throttle.
    """

    def __init__(
        self,
        detector: PatternDetector,
        engine: InterventionEngine,
        queue: NotificationQueue,
        config: Optional[GuardConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        save_delay: float = SAVE_ANALYSIS_DELAY,
    ):
        self.detector = detector
        self.engine = engine
        self.queue = queue
        self.config = config or GuardConfig()
        self._clock = clock
        self._typing = Debouncer(self.config.typing_delay / 1000)
        self._saves = Debouncer(save_delay)
        self._history: dict[str, list[FileAnalysis]] = {}
        self._last_analysis_at: dict[str, float] = {}
        self.detection_count = 0

    @property
    def enabled(self) -> bool:
        return self.config.is_file_watcher_enabled()

    def update_config(self, config: GuardConfig) -> None:
        self.config = config
        self._typing.delay = config.typing_delay / 1000

    def _accepts(self, path: str) -> bool:
        return self.enabled and is_code_file(path)

    # ============================================================
    # EDITOR TRIGGERS
    # ============================================================

    def on_text_changed(self, path: str, text: str) -> None:
        if not self._accepts(path):
            return
        self._typing.schedule(path, self._realtime, path, text, TriggerType.TYPED)

    async def on_will_save(self, path: str, text: str) -> Optional[FileAnalysis]:
        """Pre-save check. Raises SaveBlockedError when the save must not proceed."""
        if not self._accepts(path):
            return None

        analysis = self.analyze(path, text, TriggerType.SAVED)
        if analysis is None or analysis.intervention != InterventionLevel.BLOCK:
            return analysis

        report = build_report(analysis.detection, path, text)
        logger.warning(
            "Critical issues detected - blocking save of %s", path,
            extra={
                "file_path": path,
                "severity_score": analysis.detection.severity_score,
                "intervention": InterventionLevel.BLOCK.value,
            },
        )
        try:
            await self.engine.show_critical_block(report)
        except Exception as e:
            logger.error(
                "Save-block dialog failed: %s", e,
                extra={"file_path": path, "error": type(e).__name__},
            )
        raise SaveBlockedError(report)

    def on_saved(self, path: str, text: str) -> None:
        if not self._accepts(path):
            return
        self._saves.schedule(path, self._realtime, path, text, TriggerType.SAVED)

    async def on_focused(self, path: str, text: str) -> None:
        if not self._accepts(path):
            return
        await self._realtime(path, text, TriggerType.FOCUSED)

    # ============================================================
    # MANUAL COMMANDS
    # ============================================================

    async def analyze_current(self, path: Optional[str], text: str = "") -> Optional[QualityIssueReport]:
        if path is None:
            await self.engine.ui.show_message("No active editor")
            return None

        analysis = self.analyze(path, text, TriggerType.MANUAL)
        if analysis is None:
            return None

        report = build_report(analysis.detection, path, text)
        if report.total_issues:
            await self.engine.ui.show_message(
                f"Found {report.total_issues} issues "
                f"({report.critical_count} critical, {report.high_count} high)"
            )
        else:
            await self.engine.ui.show_message("No quality issues detected")
        return report

    async def request_fixes(self, path: Optional[str], text: str = "") -> None:
        if path is None:
            await self.engine.ui.show_message("No active editor")
            return

        analysis = self.analyze(path, text, TriggerType.MANUAL)
        if analysis is None or not analysis.detection.matches:
            await self.engine.ui.show_message("No quality issues detected")
            return

        report = build_report(analysis.detection, path, text)
        await self.engine.request_user_fix(report, analysis.profile.behavior.detailed_reports)

    async def show_quality_report(self, path: Optional[str], text: str = "") -> None:
        if path is None:
            return
        analysis = self.analyze(path, text, TriggerType.MANUAL)
        if analysis is not None:
            await self.engine.show_detailed_report(build_report(analysis.detection, path, text))

    # ============================================================
    # ANALYSIS
    # ============================================================

    def analyze(self, path: str, text: str, trigger: TriggerType) -> Optional[FileAnalysis]:
        """Scan one buffer and decide the intervention. None for empty buffers."""
        if not text.strip():
            return None

        profile = self.detector.profiles.current
        detection = self.detector.analyze_code(text)
        self.detection_count += 1

        analysis = FileAnalysis(
            file_path=path,
            timestamp=time.time(),
            detection=detection,
            trigger=trigger,
            intervention=decide_intervention(
                detection, trigger, profile, self.config.block_critical_saves,
            ),
            profile=profile,
        )
        self._remember(analysis)

        if detection.matches:
            logger.info(
                "Analyzed %s: %s (%d)", PurePath(path).name,
                detection.quality_level.value, detection.severity_score,
                extra={
                    "file_path": path,
                    "trigger": trigger.value,
                    "severity_score": detection.severity_score,
                    "quality_level": detection.quality_level.value,
                    "intervention": analysis.intervention.value,
                    "profile": profile.key,
                },
            )
        return analysis

    async def _realtime(self, path: str, text: str, trigger: TriggerType) -> None:
        now = self._clock()
        last = self._last_analysis_at.get(path)
        if last is not None and now - last < MIN_ANALYSIS_INTERVAL:
            logger.debug("Analysis throttled", extra={"file_path": path, "trigger": trigger.value})
            return
        self._last_analysis_at[path] = now

        analysis = self.analyze(path, text, trigger)
        if analysis is not None:
            await self._handle_detection(analysis, text)

    async def _handle_detection(self, analysis: FileAnalysis, text: str) -> None:
        detection = analysis.detection
        detailed = analysis.profile.behavior.detailed_reports
        try:
            if self.engine.should_auto_intervene(detection, analysis.profile):
                report = build_report(detection, analysis.file_path, text)
                await self.engine.perform_automatic(report, detailed)
                return

            # After the save has happened a BLOCK can only become a fix request
            if analysis.intervention in (InterventionLevel.SIGNAL_FOR_FIX, InterventionLevel.BLOCK):
                report = build_report(detection, analysis.file_path, text)
                await self.engine.request_user_fix(report, detailed)
            elif analysis.intervention == InterventionLevel.WARNING:
                self._queue_warning(analysis)
        except Exception as e:
            logger.error(
                "Intervention dispatch failed: %s", e,
                extra={"file_path": analysis.file_path, "error": type(e).__name__},
            )

    def _queue_warning(self, analysis: FileAnalysis) -> None:
        file_name = PurePath(analysis.file_path).name or "file"
        self.queue.enqueue(Notification(
            kind=NotificationKind.TOOL_ISSUE,
            patterns=analysis.detection.categories,
            severity=analysis.detection.quality_level.value,
            description=f"Quality issues in {file_name} - consider requesting AI fixes",
        ))

    def _remember(self, analysis: FileAnalysis) -> None:
        history = self._history.setdefault(analysis.file_path, [])
        history.append(analysis)
        if len(history) > HISTORY_LIMIT:
            del history[0]

    def history(self, path: str) -> list[FileAnalysis]:
        return list(self._history.get(path, ()))

    def stats(self) -> dict:
        return {
            "total_detections": self.detection_count,
            "ai_interventions": self.engine.auto_interventions,
            "files_monitored": len(self._history),
            "pending_timers": len(self._typing) + len(self._saves),
        }

    async def drain(self) -> None:
        """Wait for debounced analyses that already fired."""
        await self._typing.drain()
        await self._saves.drain()

    def dispose(self) -> None:
        self._typing.dispose()
        self._saves.dispose()
        self._history.clear()
        self._last_analysis_at.clear()
