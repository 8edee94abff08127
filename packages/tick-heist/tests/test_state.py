"""Tests for tick_heist.state and tick_heist.run."""
from __future__ import annotations

from tick_heist.resolution import ModifierTotals
from tick_heist.run import INFINITE, Run, RunSnapshot
from tick_heist.state import EngineState
from tick_heist.types import Bundle


def _run(**kwargs) -> Run:  # type: ignore[no-untyped-def]
    fields = dict(run_id="run_1", activity_id="a", variant_id="v", started_at=1000, ends_at=3000)
    fields.update(kwargs)
    return Run(**fields)


class TestRun:
    def test_timing(self) -> None:
        run = _run()
        assert run.duration_ms == 2000
        assert not run.is_due(2999)
        assert run.is_due(3000)
        assert run.remaining(2500) == 500
        assert run.remaining(9000) == 0
        assert run.progress(2000) == 0.5

    def test_zero_duration_progress(self) -> None:
        assert _run(ends_at=1000).progress(0) == 1.0

    def test_repeat_counters(self) -> None:
        assert _run(runs_left=INFINITE).next_runs_left() == INFINITE
        assert _run(runs_left=2).next_runs_left() == 1
        assert _run(runs_left=0).next_runs_left() == 0
        assert _run(runs_left=INFINITE).wants_repeat()
        assert not _run(runs_left=0).wants_repeat()

    def test_dict_round_trip(self) -> None:
        run = _run(
            crew_ids=["s_1"],
            runs_left=2,
            snapshot=RunSnapshot(
                inputs_paid=Bundle(resources={"cash": 5}),
                planned_outcome_id="success",
                roll=0.25,
                modifiers=ModifierTotals(outcome_weights={"caught": -4}),
            ),
        )
        assert Run.from_dict(run.to_dict()) == run


class TestEngineState:
    def test_reveal_reports_new(self) -> None:
        state = EngineState()
        assert state.reveal("activities", "mugging")
        assert not state.reveal("activities", "mugging")
        assert state.is_revealed("activities", "mugging")
        assert not state.is_revealed("branches", "mugging")

    def test_completion_counters(self) -> None:
        state = EngineState()
        state.record_completion("pickpocket", "crowd")
        state.record_completion("pickpocket", "tourists")
        assert state.completion_count("pickpocket") == 2
        assert state.completion_count("pickpocket", "crowd") == 1
        assert state.completion_count("mugging") == 0

    def test_run_ids(self) -> None:
        state = EngineState()
        assert [state.new_run_id(), state.new_run_id()] == ["run_1", "run_2"]

    def test_log_uses_current_time(self) -> None:
        state = EngineState()
        state.now = 750
        state.add_log("hello")
        entry = state.log.last()
        assert entry is not None
        assert entry.time == 750

    def test_snapshot_round_trip(self) -> None:
        state = EngineState()
        state.now = 42
        state.flags["met_fence"] = True
        state.reveal("tabs", "crew")
        state.ledger.add_resource("cash", 9)
        state.runs.append(_run(run_id=state.new_run_id()))
        state.record_completion("a", "v")
        state.add_log("hello")

        other = EngineState()
        other.restore(state.snapshot())
        assert other.snapshot() == state.snapshot()
        assert other.new_run_id() == "run_2"
