"""
Tests for intervention decisions:
- Aggressiveness profiles and the profile store
- Intervention policy (BLOCK / SIGNAL_FOR_FIX / WARNING / NONE)
- Cooldown gate (mutual exclusion, window, settle release)
"""

import asyncio

import pytest

from codeguard.cooldown import CooldownGate
from codeguard.policy import InterventionLevel, TriggerType, decide_intervention
from codeguard.profiles import (
    BUILTIN_PROFILES,
    LIGHT,
    SOPHISTICATED,
    ZERO_TOLERANCE,
    Capability,
    ProfileStore,
    capability_for,
)
from codeguard.scorer import DetectionResult, QualityLevel


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _result(score, level):
    return DetectionResult(
        matches=(),
        severity_score=score,
        quality_level=level,
        has_direct_refusal=False,
        has_educational_deflection=False,
    )


# ============================================================
# PROFILES
# ============================================================

class TestProfiles:
    """Built-in aggressiveness profiles."""

    def test_builtin_thresholds(self):
        assert [
            (p.key, p.thresholds.critical_score, p.thresholds.poor_score,
             p.thresholds.warning_score, p.thresholds.auto_intervention_score)
            for p in BUILTIN_PROFILES
        ] == [
            ("zero-tolerance", 15, 10, 5, 10),
            ("sophisticated", 50, 30, 15, 30),
            ("light", 80, 60, 40, 80),
        ]

    def test_light_disables_non_security_code_patterns(self):
        assert LIGHT.is_pattern_enabled(Capability.SECURITY_ISSUES)
        assert LIGHT.is_pattern_enabled(Capability.TERMINAL_BAILOUTS)
        assert not LIGHT.is_pattern_enabled(Capability.TYPESCRIPT_BAILOUTS)
        assert not LIGHT.is_pattern_enabled("productionIssues")
        assert not LIGHT.is_pattern_enabled(Capability.CODE_QUALITY_ISSUES)

    def test_light_behavior(self):
        assert LIGHT.behavior.auto_intervention_enabled
        assert not LIGHT.behavior.block_saves
        assert not LIGHT.behavior.show_notifications
        assert not LIGHT.behavior.detailed_reports

    def test_strict_profiles_enable_everything(self):
        for profile in (ZERO_TOLERANCE, SOPHISTICATED):
            assert all(profile.is_pattern_enabled(cap) for cap in Capability)
            assert profile.behavior.block_saves

    def test_unknown_capability_is_enabled(self):
        assert LIGHT.is_pattern_enabled("somethingNew")

    def test_capability_for(self):
        assert capability_for("DIRECT_REFUSAL", "terminal") == Capability.TERMINAL_BAILOUTS
        assert capability_for("SECURITY_ISSUES", "code") == Capability.SECURITY_ISSUES
        assert capability_for("CUSTOM", "code") is None
        assert LIGHT.is_category_enabled("CUSTOM", "code")

    def test_should_auto_intervene(self):
        assert SOPHISTICATED.should_auto_intervene(30)
        assert not SOPHISTICATED.should_auto_intervene(29)
        assert ZERO_TOLERANCE.should_auto_intervene(10)


class TestProfileStore:
    """Profile selection."""

    def test_default_is_sophisticated(self):
        assert ProfileStore().current is SOPHISTICATED

    def test_set_current(self):
        store = ProfileStore()
        assert store.set_current("light") is LIGHT
        assert store.current is LIGHT
        assert not store.is_pattern_enabled(Capability.TYPESCRIPT_BAILOUTS)

    def test_unknown_name_raises(self):
        store = ProfileStore()
        with pytest.raises(ValueError):
            store.set_current("paranoid")
        with pytest.raises(ValueError):
            ProfileStore("paranoid")
        assert store.current is SOPHISTICATED

    def test_all_lists_builtins(self):
        assert [p.key for p in ProfileStore().all()] == [
            "zero-tolerance", "sophisticated", "light",
        ]


# ============================================================
# POLICY
# ============================================================

class TestDecideIntervention:
    """Verdict + trigger -> action."""

    def test_critical_save_blocks(self):
        level = decide_intervention(
            _result(55, QualityLevel.CRITICAL), TriggerType.SAVED, SOPHISTICATED,
        )
        assert level == InterventionLevel.BLOCK

    def test_critical_save_without_block_switch(self):
        level = decide_intervention(
            _result(55, QualityLevel.CRITICAL), TriggerType.SAVED, SOPHISTICATED, block_saves=False,
        )
        assert level == InterventionLevel.SIGNAL_FOR_FIX

    def test_profile_without_save_blocking(self):
        level = decide_intervention(
            _result(85, QualityLevel.CRITICAL), TriggerType.SAVED, LIGHT,
        )
        assert level == InterventionLevel.SIGNAL_FOR_FIX

    @pytest.mark.parametrize("trigger", [TriggerType.TYPED, TriggerType.FOCUSED, TriggerType.MANUAL])
    def test_critical_elsewhere_signals(self, trigger):
        level = decide_intervention(_result(55, QualityLevel.CRITICAL), trigger, SOPHISTICATED)
        assert level == InterventionLevel.SIGNAL_FOR_FIX

    def test_poor_signals(self):
        level = decide_intervention(_result(12, QualityLevel.POOR), TriggerType.TYPED, ZERO_TOLERANCE)
        assert level == InterventionLevel.SIGNAL_FOR_FIX

    def test_score_floor_signals(self):
        level = decide_intervention(_result(25, QualityLevel.ACCEPTABLE), TriggerType.TYPED, SOPHISTICATED)
        assert level == InterventionLevel.SIGNAL_FOR_FIX

    def test_warning(self):
        level = decide_intervention(_result(10, QualityLevel.GOOD), TriggerType.TYPED, SOPHISTICATED)
        assert level == InterventionLevel.WARNING

    def test_nothing(self):
        level = decide_intervention(_result(9, QualityLevel.GOOD), TriggerType.SAVED, SOPHISTICATED)
        assert level == InterventionLevel.NONE


# ============================================================
# COOLDOWN GATE
# ============================================================

class TestCooldownGate:
    """One-shot trigger with a cooldown window."""

    def test_first_acquire_succeeds(self):
        gate = CooldownGate("file", 30.0, clock=FakeClock())
        assert gate.can_fire()
        assert gate.try_acquire()
        assert gate.is_active

    def test_active_gate_refuses(self):
        gate = CooldownGate("file", 30.0, clock=FakeClock())
        gate.try_acquire()
        assert not gate.can_fire()
        assert not gate.try_acquire()

    def test_window_applies_after_release(self):
        clock = FakeClock()
        gate = CooldownGate("file", 30.0, clock=clock)
        gate.try_acquire()
        gate.release()

        clock.advance(29.9)
        assert not gate.try_acquire()
        clock.advance(0.1)
        assert gate.try_acquire()

    def test_window_alone_is_not_enough_while_active(self):
        clock = FakeClock()
        gate = CooldownGate("conversation", 60.0, clock=clock)
        gate.try_acquire()
        clock.advance(120)
        assert not gate.try_acquire()

    def test_state_snapshot(self):
        clock = FakeClock(500.0)
        gate = CooldownGate("file", 30.0, clock=clock)
        gate.try_acquire()
        state = gate.state
        assert state.key == "file"
        assert state.is_active
        assert state.last_fired_at == 500.0
        assert state.window == 30.0

    def test_dispose_forgets_history(self):
        gate = CooldownGate("file", 30.0, clock=FakeClock())
        gate.try_acquire()
        gate.dispose()
        assert not gate.is_active
        assert gate.state.last_fired_at is None
        assert gate.try_acquire()

    def test_gates_are_independent(self):
        clock = FakeClock()
        files = CooldownGate("file", 30.0, clock=clock)
        conversations = CooldownGate("conversation", 60.0, clock=clock)
        assert files.try_acquire()
        assert conversations.try_acquire()

    @pytest.mark.asyncio
    async def test_schedule_release_drops_active_flag(self):
        gate = CooldownGate("file", 0.0, settle_delay=0.01)
        gate.try_acquire()
        gate.schedule_release()
        assert gate.is_active
        await asyncio.sleep(0.05)
        assert not gate.is_active
        assert gate.try_acquire()

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_release(self):
        gate = CooldownGate("file", 30.0, settle_delay=0.01, clock=FakeClock())
        gate.try_acquire()
        gate.schedule_release()
        gate.dispose()
        await asyncio.sleep(0.03)
        assert not gate.is_active
        assert gate.state.last_fired_at is None
