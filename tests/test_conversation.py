"""
Tests for the conversation monitor:
- Tool-use and assistant-text extraction from transcript entries
- Incremental JSONL processing
- Terminal intervention (ESC, prompt, CR) and its cooldown
- Fallback notification when no terminal exists
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest

from codeguard.conversation import (
    CR,
    ENFORCEMENT_PROMPT,
    ESC,
    ConversationMonitor,
    assistant_text,
    extract_tool_use,
)
from codeguard.cooldown import CooldownGate
from codeguard.detector import PatternDetector
from codeguard.hosts import TerminalHost, UIHost
from codeguard.notifications import NotificationQueue
from codeguard.patterns.todo import TodoAnalyzer

TRANSCRIPT = "/home/dev/.claude/projects/-work-app/session.jsonl"

TODO_LINE = json.dumps({
    "type": "user",
    "toolUseResult": {
        "oldTodos": [],
        "newTodos": [
            {"content": "Plan implementation for auth", "status": "pending"},
            {"content": "Create mock for the user store", "status": "pending"},
        ],
    },
})
REFUSAL_LINE = json.dumps({
    "type": "assistant",
    "message": {
        "role": "assistant",
        "content": [
            {"type": "text", "text": "I cannot generate code for you. This will help you learn."},
        ],
    },
})
CLEAN_LINE = json.dumps({
    "type": "assistant",
    "message": {"role": "assistant", "content": [{"type": "text", "text": "Done. All tests pass."}]},
})


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingUI(UIHost):
    def __init__(self):
        self.messages = []

    async def show_message(self, text, choices=()):
        self.messages.append((text, list(choices)))
        return None

    async def show_blocking_error(self, text, choices=()):
        return None

    async def open_read_only_panel(self, title, body):
        return None


class RecordingTerminal(TerminalHost):
    name = "assistant"

    def __init__(self):
        self.sent = []

    async def send_text(self, text, add_newline=True):
        self.sent.append((text, add_newline))

    async def show(self):
        return None


async def _no_sleep(delay):
    await asyncio.sleep(0)


def make_monitor(terminal=None, sleep=_no_sleep, clock=None):
    ui = RecordingUI()
    queue = NotificationQueue(ui, sleep=_no_sleep)
    monitor = ConversationMonitor(
        PatternDetector(),
        TodoAnalyzer(),
        queue,
        terminals=lambda: terminal,
        gate=CooldownGate("conversation", 60.0, clock=clock or FakeClock()),
        debounce_delay=0.01,
        sleep=sleep,
    )
    return monitor, ui


# ============================================================
# EXTRACTION
# ============================================================

class TestExtraction:
    """Reading transcript entries."""

    def test_todo_result_without_tool_name(self):
        tool_use = extract_tool_use(json.loads(TODO_LINE))
        assert tool_use.tool == "todowrite"
        assert tool_use.confidence == "medium"
        assert tool_use.has_todo_content
        assert tool_use.is_todo
        assert "Plan implementation for auth" in tool_use.result

    def test_tool_name_from_content(self):
        message = {
            "toolUseResult": "ok",
            "message": {"content": [{"type": "tool_use", "name": "TodoWrite"}]},
        }
        tool_use = extract_tool_use(message)
        assert tool_use.tool == "TodoWrite"
        assert tool_use.confidence == "high"
        assert tool_use.is_todo

    def test_tool_name_from_tool_calls(self):
        message = {
            "toolUseResult": "file written",
            "message": {"tool_calls": [{"function": {"name": "write_file"}}]},
        }
        tool_use = extract_tool_use(message)
        assert tool_use.tool == "write_file"
        assert not tool_use.is_todo

    def test_checkbox_marks_todo_list(self):
        tool_use = extract_tool_use({"toolUseResult": "☐ wire up login"})
        assert tool_use.tool == "todowrite"
        assert tool_use.confidence == "low"

    def test_no_tool_result(self):
        assert extract_tool_use({"type": "assistant"}) is None

    def test_assistant_text(self):
        assert assistant_text(json.loads(REFUSAL_LINE)).startswith("I cannot generate")
        assert assistant_text({"type": "assistant", "message": {"content": "plain"}}) == "plain"
        assert assistant_text(json.loads(TODO_LINE)) == ""


# ============================================================
# PROCESSING
# ============================================================

class TestProcessing:
    """Incremental analysis of appended lines."""

    @pytest.mark.asyncio
    async def test_only_new_lines_are_analyzed(self):
        monitor, _ = make_monitor()
        assert await monitor.process_transcript(TRANSCRIPT, CLEAN_LINE) == 1
        assert await monitor.process_transcript(TRANSCRIPT, CLEAN_LINE) == 0
        assert await monitor.process_transcript(TRANSCRIPT, CLEAN_LINE + "\n" + CLEAN_LINE) == 1
        assert monitor.stats()["messages_analyzed"] == 2
        assert monitor.stats()["transcripts"] == 1

    @pytest.mark.asyncio
    async def test_unparseable_line_is_skipped(self):
        monitor, _ = make_monitor()
        content = "{broken\n" + CLEAN_LINE
        assert await monitor.process_transcript(TRANSCRIPT, content) == 2
        assert monitor.messages_analyzed == 1

    @pytest.mark.asyncio
    async def test_odd_tool_call_shape_does_not_stop_the_pass(self):
        terminal = RecordingTerminal()
        monitor, _ = make_monitor(terminal=terminal)
        odd = json.dumps({"toolUseResult": "x", "message": {"tool_calls": [{"function": "todowrite"}]}})
        assert await monitor.process_transcript(TRANSCRIPT, odd + "\n" + REFUSAL_LINE) == 2
        await monitor.drain()
        assert monitor.messages_analyzed == 2
        assert monitor.interventions == 1
        assert terminal.sent[0] == (ESC, False)
        monitor.gate.dispose()

    def test_odd_shapes_are_tolerated_by_extractors(self):
        tool_use = extract_tool_use({"toolUseResult": "x", "message": {"tool_calls": "nope", "content": [{"name": 3}]}})
        assert tool_use.tool == "unknown"
        null_text = {
            "type": "assistant",
            "message": {"content": [{"type": "text", "text": None}, {"type": "text", "text": "ok"}]},
        }
        assert assistant_text(null_text) == "ok"

    @pytest.mark.asyncio
    async def test_failing_message_is_logged_and_skipped(self, caplog):
        monitor, _ = make_monitor()
        monitor._analyze_message = AsyncMock(side_effect=[RuntimeError("bad entry"), None])
        with caplog.at_level(logging.ERROR, logger="codeguard.conversation"):
            assert await monitor.process_transcript(TRANSCRIPT, CLEAN_LINE + "\n" + CLEAN_LINE) == 2
        assert monitor._analyze_message.await_count == 2
        assert any("bad entry" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_clean_conversation_does_not_intervene(self):
        terminal = RecordingTerminal()
        monitor, _ = make_monitor(terminal=terminal)
        await monitor.process_transcript(TRANSCRIPT, CLEAN_LINE)
        assert terminal.sent == []
        assert monitor.interventions == 0

    @pytest.mark.asyncio
    async def test_changes_are_debounced(self):
        monitor, _ = make_monitor()
        monitor.process_transcript = AsyncMock(return_value=0)
        monitor.on_transcript_changed(TRANSCRIPT, CLEAN_LINE)
        monitor.on_transcript_changed(TRANSCRIPT, CLEAN_LINE + "\n" + CLEAN_LINE)
        await asyncio.sleep(0.05)
        await monitor.drain()
        monitor.process_transcript.assert_awaited_once_with(
            TRANSCRIPT, CLEAN_LINE + "\n" + CLEAN_LINE,
        )

    @pytest.mark.asyncio
    async def test_non_transcript_files_are_ignored(self):
        monitor, _ = make_monitor()
        monitor.process_transcript = AsyncMock(return_value=0)
        monitor.on_transcript_changed("/tmp/notes.txt", CLEAN_LINE)
        monitor.enabled = False
        monitor.on_transcript_changed(TRANSCRIPT, CLEAN_LINE)
        await asyncio.sleep(0.03)
        monitor.process_transcript.assert_not_awaited()


# ============================================================
# INTERVENTION
# ============================================================

class TestIntervention:
    """Interrupting the assistant through its terminal."""

    @pytest.mark.asyncio
    async def test_todo_avoidance_interrupts_assistant(self):
        terminal = RecordingTerminal()
        monitor, ui = make_monitor(terminal=terminal)

        await monitor.process_transcript(TRANSCRIPT, TODO_LINE)
        await monitor.drain()

        assert terminal.sent[0] == (ESC, False)
        prompt, newline = terminal.sent[1]
        assert not newline
        assert "Mock/Stub/Placeholder Usage: create mock" in prompt
        assert "Planning Instead of Implementation: plan implementation" in prompt
        assert terminal.sent[2] == (CR, False)
        assert monitor.interventions == 1

        await monitor.queue.join()
        assert ui.messages[0][0] == "Quality issue addressed! Patterns: plan implementation, create mock"
        monitor.gate.dispose()

    @pytest.mark.asyncio
    async def test_assistant_refusal_interrupts_assistant(self):
        terminal = RecordingTerminal()
        monitor, _ = make_monitor(terminal=terminal)
        await monitor.process_transcript(TRANSCRIPT, REFUSAL_LINE)
        await monitor.drain()
        assert terminal.sent[0] == (ESC, False)
        assert "I cannot generate code for you" in terminal.sent[1][0]
        monitor.gate.dispose()

    @pytest.mark.asyncio
    async def test_correction_waits_before_prompt(self):
        terminal = RecordingTerminal()
        delays = []

        async def recording_sleep(delay):
            delays.append(delay)

        monitor, _ = make_monitor(terminal=terminal, sleep=recording_sleep)
        await monitor.process_transcript(TRANSCRIPT, TODO_LINE)
        await monitor.drain()
        assert delays == [1.5]
        monitor.gate.dispose()

    @pytest.mark.asyncio
    async def test_cooldown_suppresses_second_trigger(self):
        terminal = RecordingTerminal()
        clock = FakeClock()
        monitor, _ = make_monitor(terminal=terminal, clock=clock)

        await monitor.process_transcript(TRANSCRIPT, TODO_LINE + "\n" + REFUSAL_LINE)
        await monitor.drain()
        assert monitor.interventions == 1
        assert [t for t, _ in terminal.sent].count(ESC) == 1

        # Released and past the window: the next one goes through
        monitor.gate.release()
        clock.now = 61.0
        assert await monitor.trigger_intervention(["for now"], "for now", 3)
        await monitor.drain()
        assert monitor.interventions == 2
        monitor.gate.dispose()

    @pytest.mark.asyncio
    async def test_no_terminal_queues_notification(self):
        monitor, ui = make_monitor(terminal=None)
        await monitor.process_transcript(TRANSCRIPT, TODO_LINE)
        await monitor.queue.join()
        assert ui.messages[0][0] == (
            "Implementation issue detected! Patterns: plan implementation, create mock"
        )
        assert monitor.interventions == 0
        monitor.gate.dispose()

    @pytest.mark.asyncio
    async def test_enforce_quality(self):
        terminal = RecordingTerminal()
        monitor, _ = make_monitor(terminal=terminal)
        await monitor.enforce_quality()
        assert terminal.sent == [(ESC, False), (ENFORCEMENT_PROMPT, False), (CR, False)]

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_delivery(self):
        terminal = RecordingTerminal()
        release = asyncio.Event()

        async def gated_sleep(delay):
            await release.wait()

        monitor, _ = make_monitor(terminal=terminal, sleep=gated_sleep)
        await monitor.process_transcript(TRANSCRIPT, TODO_LINE)
        monitor.dispose()
        release.set()
        await asyncio.sleep(0.01)
        assert terminal.sent == [(ESC, False)]
        assert monitor.stats()["transcripts"] == 0
        monitor.gate.dispose()
