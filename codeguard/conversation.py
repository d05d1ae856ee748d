"""
Conversation Monitor — AI Transcript Quality Watch

Watches the assistant's JSONL transcripts. Each change is debounced
per transcript path; only lines appended since the last pass are
parsed. Two signals are read from every new message:

  1. Todo/task-list tool output, scored by the todo analyzer
  2. Assistant text, scanned by the pattern detector ("both")

A qualifying signal interrupts the assistant through its terminal:
ESC, then after a short pause the correction prompt and a carriage
return. Interventions share one CooldownGate, separate from the
file-save gate.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Awaitable, Callable, Optional

from codeguard.cooldown import CooldownGate
from codeguard.debounce import Debouncer
from codeguard.detector import PatternDetector
from codeguard.hosts import TerminalLocator, no_terminal
from codeguard.notifications import Notification, NotificationKind, NotificationQueue
from codeguard.patterns.todo import TodoAnalyzer, build_correction_message
from codeguard.scorer import DetectionResult, QualityLevel

logger = logging.getLogger(__name__)

CONVERSATION_COOLDOWN = 60.0
TRANSCRIPT_DEBOUNCE = 1.0
CORRECTION_DELAY = 1.5

ESC = "\x1b"
CR = "\r"

TODO_TOOLS = ("todowrite", "todoupdate")
TODO_INDICATORS = ("newTodos", "oldTodos", "☐", "TODO:", "pending", 'status":"pending', 'content":"')

ENFORCEMENT_PROMPT = (
    "QUALITY ENFORCEMENT: Provide the complete, production-ready implementation now. "
    "No mocks, stubs, placeholders, planning phases or reduced scope."
)


@dataclass(frozen=True)
class ToolUse:
    tool: str
    result: str
    confidence: str
    has_todo_content: bool

    @property
    def is_todo(self) -> bool:
        return self.tool.lower() in TODO_TOOLS or self.has_todo_content


def has_todo_content(text: str) -> bool:
    return any(indicator in text for indicator in TODO_INDICATORS)


def extract_tool_use(message: dict) -> Optional[ToolUse]:
    """Tool name and serialized result of a transcript entry, or None."""
    raw = message.get("toolUseResult")
    if not raw:
        return None

    result = raw if isinstance(raw, str) else json.dumps(raw)
    tool = "unknown"
    confidence = "low"

    body = message.get("message")
    if isinstance(body, dict):
        calls = body.get("tool_calls")
        content = body.get("content")
        function = calls[0].get("function") if isinstance(calls, list) and calls and isinstance(calls[0], dict) else None
        if isinstance(function, dict) and isinstance(function.get("name"), str) and function["name"]:
            tool, confidence = function["name"], "high"
        elif (
            isinstance(content, list) and content and isinstance(content[0], dict)
            and isinstance(content[0].get("name"), str) and content[0]["name"]
        ):
            tool, confidence = content[0]["name"], "high"

    todo = has_todo_content(result)
    if todo and tool == "unknown":
        if "newTodos" in result and "oldTodos" in result:
            tool, confidence = "todowrite", "medium"
        elif "☐" in result or "TODO:" in result:
            tool, confidence = "todowrite", "low"

    return ToolUse(tool=tool, result=result, confidence=confidence, has_todo_content=todo)


def assistant_text(message: dict) -> str:
    """Concatenated text blocks of an assistant message ('' for anything else)."""
    if message.get("type") != "assistant":
        return ""
    body = message.get("message")
    if not isinstance(body, dict):
        return ""
    content = body.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    return "\n".join(
        block["text"]
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    )


def is_qualifying(detection: DetectionResult) -> bool:
    return detection.has_direct_refusal or detection.quality_level.at_least(QualityLevel.POOR)


class ConversationMonitor:
    """
    Incremental transcript analyzer with terminal intervention.

    Args:
        detector: Pattern detector bound to the shared profile store.
        todo: Todo/task-list phrase analyzer.
        queue: Notification queue.
        terminals: Returns the assistant's terminal, or None.
        gate: Conversation cooldown gate.
        sleep: Awaitable delay before the correction prompt, injectable for tests.
    """

    def __init__(
        self,
        detector: PatternDetector,
        todo: TodoAnalyzer,
        queue: NotificationQueue,
        terminals: TerminalLocator = no_terminal,
        gate: Optional[CooldownGate] = None,
        debounce_delay: float = TRANSCRIPT_DEBOUNCE,
        correction_delay: float = CORRECTION_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.detector = detector
        self.todo = todo
        self.queue = queue
        self.terminals = terminals
        self.gate = gate or CooldownGate("conversation", CONVERSATION_COOLDOWN)
        self.correction_delay = correction_delay
        self._sleep = sleep
        self._debouncer = Debouncer(debounce_delay)
        self._seen: dict[str, int] = {}
        self._deliveries: set[asyncio.Task] = set()
        self.enabled = True
        self.messages_analyzed = 0
        self.interventions = 0

    def on_transcript_changed(self, path: str, content: str) -> None:
        if not self.enabled or not path.endswith(".jsonl"):
            return
        self._debouncer.schedule(path, self.process_transcript, path, content)

    async def process_transcript(self, path: str, content: str) -> int:
        """Analyze the lines appended since the last pass. Returns how many were new."""
        lines = [line for line in content.strip().split("\n") if line.strip()]
        last = self._seen.get(path, 0)
        if len(lines) <= last:
            return 0

        self._seen[path] = len(lines)
        logger.info(
            "Conversation analysis: %s (%d -> %d messages)",
            PurePath(path).name, last, len(lines),
            extra={"file_path": path},
        )

        for offset, line in enumerate(lines[last:]):
            message_num = last + offset + 1
            try:
                message = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(
                    "Unparseable transcript line %d: %s", message_num, e,
                    extra={"file_path": path, "error": type(e).__name__},
                )
                continue
            if not isinstance(message, dict):
                continue
            try:
                await self._analyze_message(message, message_num)
            except Exception as e:
                logger.error(
                    "Transcript message %d analysis failed: %s", message_num, e,
                    extra={"file_path": path, "error": type(e).__name__},
                )
        return len(lines) - last

    async def _analyze_message(self, message: dict[str, Any], message_num: int) -> None:
        self.messages_analyzed += 1

        tool_use = extract_tool_use(message)
        if tool_use is not None and tool_use.is_todo:
            analysis = self.todo.analyze(tool_use.result)
            if self.todo.should_trigger_intervention(analysis):
                logger.warning(
                    "Implementation avoidance detected in %s output", tool_use.tool,
                    extra={"patterns": analysis.patterns, "severity_score": analysis.score},
                )
                await self.trigger_intervention(analysis.patterns, tool_use.result, message_num)
                return
            if analysis.severity == "MEDIUM":
                logger.info(
                    "Medium severity implementation issue", extra={"patterns": analysis.patterns},
                )

        text = assistant_text(message)
        if not text:
            return
        detection = self.detector.analyze_text(text)
        if is_qualifying(detection):
            patterns = list(dict.fromkeys(m.matched_text for m in detection.matches))
            logger.warning(
                "Assistant avoidance detected: %s", ", ".join(detection.categories),
                extra={
                    "severity_score": detection.severity_score,
                    "quality_level": detection.quality_level.value,
                    "patterns": detection.categories,
                },
            )
            await self.trigger_intervention(patterns, text, message_num)

    async def trigger_intervention(self, patterns: list[str], content: str, message_num: int) -> bool:
        """Interrupt the assistant and queue the correction. False when suppressed."""
        if not self.gate.try_acquire():
            return False

        terminal = self.terminals()
        if terminal is None:
            logger.warning("No terminal found - cannot intervene", extra={"patterns": patterns})
            self.queue.enqueue(Notification(kind=NotificationKind.TODO_ISSUE, patterns=patterns))
            self.gate.schedule_release()
            return True

        try:
            logger.info(
                "Sending interrupt to %s", terminal.name,
                extra={"intervention": "interrupt", "patterns": patterns},
            )
            await terminal.send_text(ESC, add_newline=False)
        except Exception as e:
            logger.error("Terminal interrupt failed: %s", e, extra={"error": type(e).__name__})
            self.gate.release()
            return False

        self.interventions += 1
        prompt = build_correction_message(patterns, content)
        task = asyncio.get_running_loop().create_task(
            self._deliver(terminal, prompt, patterns, message_num)
        )
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        self.gate.schedule_release()
        return True

    async def _deliver(self, terminal, prompt: str, patterns: list[str], message_num: int) -> None:
        await self._sleep(self.correction_delay)
        try:
            await terminal.send_text(prompt, add_newline=False)
            await terminal.send_text(CR, add_newline=False)
        except Exception as e:
            logger.error("Correction delivery failed: %s", e, extra={"error": type(e).__name__})
            return
        self.queue.enqueue(Notification(
            kind=NotificationKind.INTERVENTION_COMPLETE,
            patterns=patterns,
            message_num=message_num,
        ))

    async def enforce_quality(self) -> None:
        """User-requested enforcement; bypasses the gate."""
        terminal = self.terminals()
        if terminal is None:
            logger.warning("No terminal found - enforcement not sent")
            return
        await terminal.send_text(ESC, add_newline=False)
        await self._sleep(self.correction_delay)
        await terminal.send_text(ENFORCEMENT_PROMPT, add_newline=False)
        await terminal.send_text(CR, add_newline=False)

    async def drain(self) -> None:
        """Wait for debounced passes and pending deliveries to finish."""
        await self._debouncer.drain()
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    def stats(self) -> dict:
        return {
            "transcripts": len(self._seen),
            "messages_analyzed": self.messages_analyzed,
            "interventions": self.interventions,
        }

    def dispose(self) -> None:
        self._debouncer.dispose()
        for task in self._deliveries:
            task.cancel()
        self._deliveries.clear()
        self._seen.clear()
