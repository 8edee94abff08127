"""Tests for tick_heist.conditions - evaluator and parser."""
from __future__ import annotations

import logging

import pytest

from tick_heist.conditions import (
    ActivityCompletedGte,
    ActivityRevealed,
    AllOf,
    AnyOf,
    FlagIs,
    ItemGte,
    Not,
    ResourceGte,
    RoleRevealed,
    StaffStarsGte,
    UnknownCondition,
    evaluate,
    evaluate_all,
    parse_condition,
)
from tick_heist.crew import CrewMember, CrewRoster, Role, StarTier
from tick_heist.state import EngineState
from tick_heist.types import ContentError


def _state() -> EngineState:
    roster = CrewRoster([Role(id="thief", xp_to_stars=(StarTier(1, 10), StarTier(2, 50)))])
    roster.add(CrewMember(id="s_1", name="Ace", role_id="thief", xp=60))
    roster.add(CrewMember(id="s_2", name="Bo", role_id="thief"))
    state = EngineState(roster=roster)
    state.flags["tutorial_done"] = True
    state.flags["district"] = "docks"
    state.ledger.add_resource("cash", 50)
    state.ledger.add_item("lockpick", 2)
    return state


class TestLeaves:
    def test_flag_is(self) -> None:
        state = _state()
        assert evaluate(FlagIs("tutorial_done"), state)
        assert not evaluate(FlagIs("tutorial_done", False), state)
        assert not evaluate(FlagIs("missing"), state)
        assert evaluate(FlagIs("district", "docks"), state)

    def test_resource_gte(self) -> None:
        state = _state()
        assert evaluate(ResourceGte("cash", 50), state)
        assert not evaluate(ResourceGte("cash", 51), state)

    def test_item_gte(self) -> None:
        state = _state()
        assert evaluate(ItemGte("lockpick", 2), state)
        assert not evaluate(ItemGte("lockpick", 3), state)

    def test_reveals(self) -> None:
        state = _state()
        assert not evaluate(RoleRevealed("thief"), state)
        state.reveal("roles", "thief")
        assert evaluate(RoleRevealed("thief"), state)
        state.reveal("activities", "mugging")
        assert evaluate(ActivityRevealed("mugging"), state)

    def test_staff_stars_any_member(self) -> None:
        state = _state()
        assert evaluate(StaffStarsGte("thief", 2), state)
        assert not evaluate(StaffStarsGte("thief", 3), state)
        assert not evaluate(StaffStarsGte("driver", 1), state)

    def test_activity_completed(self) -> None:
        state = _state()
        assert not evaluate(ActivityCompletedGte("pickpocket", 1), state)
        state.record_completion("pickpocket", "crowd")
        assert evaluate(ActivityCompletedGte("pickpocket", 1), state)


class TestCombinators:
    def test_all_of(self) -> None:
        state = _state()
        assert evaluate(AllOf((FlagIs("tutorial_done"), ResourceGte("cash", 10))), state)
        assert not evaluate(AllOf((FlagIs("tutorial_done"), ResourceGte("cash", 99))), state)

    def test_any_of(self) -> None:
        state = _state()
        assert evaluate(AnyOf((FlagIs("missing"), ResourceGte("cash", 10))), state)
        assert not evaluate(AnyOf(()), state)

    def test_not(self) -> None:
        assert evaluate(Not(FlagIs("missing")), _state())

    def test_empty_list_is_true(self) -> None:
        assert evaluate_all([], _state())
        assert evaluate(AllOf(()), _state())


class TestUnknown:
    def test_unknown_passes_by_default(self) -> None:
        assert evaluate(UnknownCondition("moonPhase"), _state())

    def test_unknown_fails_when_strict(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="tick_heist.conditions"):
            assert not evaluate(UnknownCondition("moonPhase"), _state(), strict=True)
        assert "moonPhase" in caplog.text


class TestPurity:
    def test_evaluation_does_not_mutate(self) -> None:
        state = _state()
        before = state.snapshot()
        evaluate(
            AllOf((FlagIs("x"), Not(ResourceGte("cash", 1)), StaffStarsGte("thief", 1))),
            state,
        )
        assert state.snapshot() == before


class TestParse:
    def test_leaf(self) -> None:
        cond = parse_condition({"type": "resourceGte", "resourceId": "cash", "value": 10})
        assert cond == ResourceGte("cash", 10)

    def test_flag_default_value(self) -> None:
        assert parse_condition({"type": "flagIs", "key": "met_fence"}) == FlagIs("met_fence", True)

    def test_nested(self) -> None:
        cond = parse_condition(
            {
                "type": "allOf",
                "conds": [
                    {"type": "flagIs", "key": "a"},
                    {"type": "not", "cond": {"type": "roleRevealed", "roleId": "thief"}},
                ],
            }
        )
        assert cond == AllOf((FlagIs("a"), Not(RoleRevealed("thief"))))

    def test_missing_field(self) -> None:
        with pytest.raises(ContentError, match="resourceId"):
            parse_condition({"type": "resourceGte", "value": 10})

    def test_unknown_type(self) -> None:
        assert parse_condition({"type": "moonPhase"}) == UnknownCondition("moonPhase")

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ContentError):
            parse_condition("flagIs")  # type: ignore[arg-type]
