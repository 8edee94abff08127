"""Tests for tick_heist.effects - applier and parser."""
from __future__ import annotations

import pytest

from tick_heist.effects import (
    IncFlagCounter,
    LogMessage,
    RevealBranch,
    RevealResource,
    RevealTab,
    SetFlag,
    UnknownEffect,
    UnlockActivity,
    apply_effect,
    apply_effects,
    parse_effect,
    parse_effects,
)
from tick_heist.state import EngineState
from tick_heist.types import ContentError


class TestApply:
    def test_reveals(self) -> None:
        state = EngineState()
        apply_effects(
            [RevealBranch("docks"), RevealResource("dirty_cash"), RevealTab("crew")], state
        )
        assert state.is_revealed("branches", "docks")
        assert state.is_revealed("resources", "dirty_cash")
        assert state.is_revealed("tabs", "crew")

    def test_unlock_logs_once(self) -> None:
        state = EngineState()
        apply_effect(UnlockActivity("mugging"), state, time=100)
        apply_effect(UnlockActivity("mugging"), state, time=200)
        assert state.is_revealed("activities", "mugging")
        assert state.log.texts() == ["Discovered: mugging"]
        assert state.log.query()[0].time == 100

    def test_set_flag(self) -> None:
        state = EngineState()
        apply_effect(SetFlag("met_fence"), state)
        apply_effect(SetFlag("district", "docks"), state)
        assert state.flags == {"met_fence": True, "district": "docks"}

    def test_inc_counter(self) -> None:
        state = EngineState()
        apply_effect(IncFlagCounter("jobs"), state)
        apply_effect(IncFlagCounter("jobs", 2), state)
        assert state.flags["jobs"] == 3

    def test_inc_counter_over_non_number_restarts(self) -> None:
        state = EngineState()
        state.flags["jobs"] = "many"
        apply_effect(IncFlagCounter("jobs"), state)
        assert state.flags["jobs"] == 1

    def test_log_message(self) -> None:
        state = EngineState()
        apply_effect(LogMessage("The cops are sniffing around.", "warn"), state, time=5)
        entry = state.log.last()
        assert entry is not None
        assert entry.kind == "warn"
        assert entry.time == 5

    def test_order_is_preserved(self) -> None:
        state = EngineState()
        apply_effects([SetFlag("x", 1), SetFlag("x", 2)], state)
        assert state.flags["x"] == 2

    def test_unknown_is_noop(self) -> None:
        state = EngineState()
        before = state.snapshot()
        apply_effect(UnknownEffect("summonBoss"), state)
        assert state.snapshot() == before


class TestParse:
    def test_reveal(self) -> None:
        assert parse_effect({"type": "revealBranch", "branchId": "docks"}) == RevealBranch("docks")

    def test_missing_id(self) -> None:
        with pytest.raises(ContentError, match="branchId"):
            parse_effect({"type": "revealBranch"})

    def test_counter_uses_value(self) -> None:
        effect = parse_effect({"type": "incFlagCounter", "key": "jobs", "value": 3})
        assert effect == IncFlagCounter("jobs", 3)

    def test_log_message_aliases(self) -> None:
        effect = parse_effect({"type": "logMessage", "message": "hi", "level": "success"})
        assert effect == LogMessage("hi", "success")

    def test_unknown(self) -> None:
        assert parse_effect({"type": "summonBoss"}) == UnknownEffect("summonBoss")

    def test_empty_list(self) -> None:
        assert parse_effects(None) == ()
