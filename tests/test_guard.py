"""
Tests for the CodeGuard application context:
- Wiring of catalog, profiles, gates and monitors
- Profile switching and configuration updates
- Status report, stats and disposal
"""

import json

import pytest

from codeguard import CodeGuard, SaveBlockedError
from codeguard.config import GuardConfig, Settings
from codeguard.hosts import UIHost

NO_DOCUMENTS = Settings(CATALOG_PATH="", TODO_PATTERNS_PATH="")


class RecordingUI(UIHost):
    def __init__(self):
        self.messages = []
        self.errors = []
        self.panels = []

    async def show_message(self, text, choices=()):
        self.messages.append(text)
        return None

    async def show_blocking_error(self, text, choices=()):
        self.errors.append(text)
        return None

    async def open_read_only_panel(self, title, body):
        self.panels.append((title, body))


def make_guard(config=None, settings=NO_DOCUMENTS):
    ui = RecordingUI()
    return CodeGuard(ui, config=config, settings=settings), ui


class TestCodeGuard:

    def test_defaults(self):
        guard, _ = make_guard()
        assert guard.profiles.current.key == "sophisticated"
        assert guard.catalog.origin == "builtin"
        assert guard.file_gate.window == 30.0
        assert guard.conversation_gate.window == 60.0
        assert guard.file_gate is not guard.conversation_gate
        assert guard.queue.enabled
        assert guard.files.enabled
        assert guard.conversations.enabled

    def test_profile_from_config(self):
        guard, _ = make_guard(GuardConfig(aggressiveness_level="light"))
        assert guard.profiles.current.key == "light"
        assert not guard.queue.enabled

    def test_set_aggressiveness(self):
        guard, _ = make_guard()
        profile = guard.set_aggressiveness("zero-tolerance")
        assert profile.key == "zero-tolerance"
        assert guard.config.aggressiveness_level == "zero-tolerance"
        assert guard.detector.profiles.current is profile

    def test_set_unknown_aggressiveness(self):
        guard, _ = make_guard()
        with pytest.raises(ValueError):
            guard.set_aggressiveness("paranoid")
        assert guard.profiles.current.key == "sophisticated"

    def test_update_config(self):
        guard, _ = make_guard()
        guard.update_config(GuardConfig(
            monitoring_mode="fileWatcher",
            aggressiveness_level="light",
            intervention_cooldown=1000,
            typing_delay=100,
        ))
        assert guard.file_gate.window == 1.0
        assert guard.profiles.current.key == "light"
        assert not guard.conversations.enabled
        assert guard.files.enabled
        assert guard.engine.config.intervention_cooldown == 1000

    def test_external_catalog(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"code": {"SECURITY_ISSUES": [r"exec\("]}}))
        guard, _ = make_guard(settings=Settings(CATALOG_PATH=str(path), TODO_PATTERNS_PATH=""))
        assert guard.catalog.origin == str(path)
        assert guard.detector.has_security_issues("exec(code)")

    @pytest.mark.asyncio
    async def test_show_status(self):
        guard, ui = make_guard()
        await guard.show_status()
        title, body = ui.panels[0]
        assert title == "Code Guard Configuration"
        assert "- **Aggressiveness**: Sophisticated" in body

    @pytest.mark.asyncio
    async def test_save_block_end_to_end(self):
        guard, ui = make_guard()
        with pytest.raises(SaveBlockedError):
            await guard.files.on_will_save("src/app.ts", 'eval("x"); const y: any = {}; console.log("d");')
        assert len(ui.errors) == 1

    def test_stats(self):
        guard, _ = make_guard()
        stats = guard.stats()
        assert stats["profile"] == "sophisticated"
        assert stats["monitoring_mode"] == "both"
        assert stats["files"]["total_detections"] == 0
        assert stats["conversations"]["interventions"] == 0
        assert stats["notifications"] == {"pending": 0, "shown": 0}
        assert stats["patterns"]["origin"] == "builtin"

    def test_dispose(self):
        guard, _ = make_guard()
        guard.file_gate.try_acquire()
        guard.dispose()
        assert not guard.queue.enabled
        assert guard.file_gate.state.last_fired_at is None
