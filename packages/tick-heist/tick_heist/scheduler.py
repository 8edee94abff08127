"""RunScheduler - starts, advances, stops and repeats runs."""
from __future__ import annotations

import logging
import random as _random
from typing import TYPE_CHECKING, Callable

from tick_heist.conditions import evaluate_all
from tick_heist.requirements import auto_assign, explain_auto_assign, validate
from tick_heist.resolution import (
    AppliedOutcome,
    WeightedOutcomes,
    apply_resolution,
    effective_duration,
    pre_roll,
)
from tick_heist.run import INFINITE, Run, RunSnapshot
from tick_heist.types import Failure, Result

if TYPE_CHECKING:
    from tick_heist.content import ContentRegistry
    from tick_heist.crew import CrewMember
    from tick_heist.state import EngineState

logger = logging.getLogger("tick_heist.scheduler")

_RESOLVE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, ArithmeticError)


def _format_duration(ms: int) -> str:
    seconds = ms // 1000
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class RunScheduler:
    """Owns the in-flight runs stored on an EngineState.

    ``start`` validates and commits a run; ``advance(now)`` resolves every
    run whose ``ends_at`` has passed, oldest start first, and re-starts
    repeating runs with the same crew.
    """

    def __init__(
        self,
        content: ContentRegistry,
        state: EngineState,
        rng: _random.Random,
        on_start: Callable[[Run], None] | None = None,
        on_complete: Callable[[Run, AppliedOutcome], None] | None = None,
        on_stop: Callable[[Run], None] | None = None,
    ) -> None:
        self._content = content
        self._state = state
        self._rng = rng
        self._config = state.config
        self._on_start = on_start
        self._on_complete = on_complete
        self._on_stop = on_stop
        self._resolving = False

    # --- Starting ---

    def start(
        self,
        activity_id: str,
        variant_id: str,
        crew_ids: list[str] | None = None,
        runs_left: int = 0,
        now: int | None = None,
    ) -> Result:
        """Validate, pay for and schedule a run.

        ``crew_ids=None`` auto-assigns crew. ``runs_left``: 0 = once,
        -1 = forever, N = N more times after this one.
        """
        self._check_not_resolving("start")
        return self._start(
            activity_id,
            variant_id,
            crew_ids,
            runs_left,
            self._state.now if now is None else now,
        )

    def _start(
        self,
        activity_id: str,
        variant_id: str,
        crew_ids: list[str] | None,
        runs_left: int,
        now: int,
    ) -> Result:
        if runs_left < INFINITE:
            raise ValueError(f"runs_left must be >= -1, got {runs_left}")
        state = self._state
        strict = self._config.strict_conditions

        # 1. Definitions
        activity = self._content.activity(activity_id)
        if activity is None:
            return Result.fail(Failure.NOT_FOUND, f"Activity {activity_id} not found")
        variant = activity.variant(variant_id)
        if variant is None:
            return Result.fail(Failure.NOT_FOUND, f"Variant {variant_id} not found")

        # 2. Visibility and unlock gates
        if not evaluate_all((*activity.visible_if, *variant.visible_if), state, strict):
            return Result.fail(Failure.HIDDEN, f"{variant.name or variant.id} is not visible")
        if not evaluate_all((*activity.unlock_if, *variant.unlock_if), state, strict):
            return Result.fail(Failure.LOCKED, f"{variant.name or variant.id} is locked")
        if runs_left != 0 and not variant.repeatable:
            return Result.fail(
                Failure.NOT_REPEATABLE, f"{variant.name or variant.id} cannot repeat"
            )

        # 3. Concurrency cap
        cap = variant.max_concurrent_runs
        if cap is not None and len(self.runs_for(activity_id, variant_id)) >= cap:
            plural = "" if cap == 1 else "s"
            return Result.fail(
                Failure.CONCURRENCY_LIMIT, f"Max {cap} concurrent run{plural} reached"
            )

        # 4. Crew selection
        if crew_ids is None:
            crew_ids = auto_assign(variant.requirements, state, now)
            if crew_ids is None:
                return Result.fail(
                    Failure.NO_CREW, explain_auto_assign(variant.requirements, state, now)
                )

        # 5. Requirements
        check = validate(variant.requirements, crew_ids, state, now)
        if not check.ok:
            return check

        # 6. Inputs
        missing = state.ledger.shortfall(variant.inputs)
        if missing:
            return Result.fail(
                Failure.INSUFFICIENT_RESOURCES, "; ".join(s.describe() for s in missing)
            )

        # 7-8. Commit: pay inputs, occupy crew
        paid = state.ledger.consume(variant.inputs)
        state.roster.mark_busy(crew_ids)
        crew = self._members(crew_ids)

        # 9. Modifiers, duration and the pre-rolled outcome
        rolled = pre_roll(variant.resolution, variant.modifiers, crew, state, self._rng)
        snapshot = RunSnapshot(
            inputs_paid=paid,
            planned_outcome_id=rolled.outcome_id,
            roll=rolled.roll,
            modifiers=rolled.modifiers,
        )
        duration = effective_duration(
            variant.duration_ms, rolled.modifiers, self._config.min_duration_ms
        )

        # 10. Schedule
        run = Run(
            run_id=state.new_run_id(),
            activity_id=activity_id,
            variant_id=variant_id,
            started_at=now,
            ends_at=now + duration,
            crew_ids=list(crew_ids),
            runs_left=runs_left,
            snapshot=snapshot,
        )
        state.runs.append(run)
        state.add_log(f"Started: {activity.name} → {variant.name}", "info", now)
        if self._on_start is not None:
            self._on_start(run)
        return Result.success(run)

    # --- Stopping ---

    def stop_run(self, run_id: str) -> Result:
        """Drop a run now. Crew are freed; paid inputs are forfeited."""
        self._check_not_resolving("stop_run")
        run = self._state.find_run(run_id)
        if run is None:
            return Result.fail(Failure.RUN_NOT_FOUND, f"Run {run_id} not found")
        self._state.runs.remove(run)
        self._state.roster.release(run.crew_ids)
        activity_name, variant_name = self._names(run)
        self._state.add_log(f"Dropped: {activity_name} → {variant_name}", "warn")
        if self._on_stop is not None:
            self._on_stop(run)
        return Result.success(run)

    def stop_repeat(self, run_id: str) -> Result:
        """Let the current iteration finish without starting another."""
        run = self._state.find_run(run_id)
        if run is None:
            return Result.fail(Failure.RUN_NOT_FOUND, f"Run {run_id} not found")
        run.runs_left = 0
        activity_name, variant_name = self._names(run)
        self._state.add_log(f"Repeat stopped: {activity_name} → {variant_name}", "info")
        return Result.success(run)

    # --- Advancing ---

    def advance(self, now: int) -> list[Run]:
        """Resolve every due run. Returns the completed runs in resolution order.

        Tick execution order:
        1. Complete due runs in start order (xp, outcome, counters, crew),
           decaying heat up to each run's end time first
        2. Restart repeating runs from their completion time
        3. Repeat 1-2 until nothing is due (catch-up after long gaps)
        4. Decay heat for the rest of the elapsed time
        5. Return crew whose jail time has expired
        """
        state = self._state
        if now < state.now:
            logger.debug("advance(%d) is behind state time %d; holding", now, state.now)
            now = state.now
        decayed_to = state.now
        state.now = now

        completed: list[Run] = []
        budget = self._config.max_completions_per_advance
        while True:
            due = [run for run in state.runs if run.is_due(now)]
            if not due:
                break
            truncated = len(completed) + len(due) > budget
            if truncated:
                due = due[: budget - len(completed)]
            for run in due:
                if run.ends_at > decayed_to:
                    state.ledger.decay_heat(run.ends_at - decayed_to)
                    decayed_to = run.ends_at
                self._complete(run)
                completed.append(run)
            for run in due:
                self._continue(run)
            if truncated:
                logger.warning("Stopped after %d completions in one advance", budget)
                state.add_log("Offline progress truncated.", "warn", now)
                break

        state.ledger.decay_heat(now - decayed_to)
        for member in state.roster.release_expired(now):
            state.add_log(f"{member.name} is now available.", "info", now)
        return completed

    def _complete(self, run: Run) -> None:
        state = self._state
        time = run.ends_at
        activity = self._content.activity(run.activity_id)
        variant = activity.variant(run.variant_id) if activity is not None else None

        state.roster.release(run.crew_ids)
        state.runs.remove(run)
        if activity is None or variant is None:
            logger.warning(
                "Run %s completed but %s/%s is not defined",
                run.run_id, run.activity_id, run.variant_id,
            )
            state.add_log("Run completed but definition missing", "warn", time)
            return

        state.roster.award_xp(run.crew_ids, variant.xp_reward)
        self._resolving = True
        try:
            try:
                applied = apply_resolution(
                    variant.resolution,
                    run.snapshot.planned_outcome_id,
                    run.snapshot.modifiers,
                    state,
                    self._rng,
                    time,
                )
            except _RESOLVE_ERRORS:
                logger.exception(
                    "Resolution of %s/%s failed; applying nothing", run.activity_id, run.variant_id
                )
                applied = AppliedOutcome(outcome_id="none")

            if applied.jail is not None:
                until = time + applied.jail.duration_ms
                for member in state.roster.jail(run.crew_ids, until):
                    state.add_log(
                        f"{member.name} is unavailable for "
                        f"{_format_duration(applied.jail.duration_ms)}",
                        "warn",
                        time,
                    )

            state.record_completion(run.activity_id, run.variant_id)
            suffix = ""
            if isinstance(variant.resolution, WeightedOutcomes):
                suffix = f" ({applied.outcome_id})"
            state.add_log(
                f"Completed: {activity.name} → {variant.name}{suffix}", "success", time
            )
            if self._on_complete is not None:
                self._on_complete(run, applied)
        finally:
            self._resolving = False

    def _continue(self, run: Run) -> None:
        if not run.wants_repeat():
            return
        if self._content.variant(run.activity_id, run.variant_id) is None:
            return
        result = self._start(
            run.activity_id,
            run.variant_id,
            list(run.crew_ids),
            run.next_runs_left(),
            run.ends_at,
        )
        if not result.ok:
            logger.info(
                "Repeat of %s/%s stopped: %s", run.activity_id, run.variant_id, result.message
            )
            self._state.add_log(f"Repeat stopped: {result.message}", "warn", run.ends_at)

    # --- Queries ---

    def runs(self) -> list[Run]:
        """In-flight runs in start order."""
        return list(self._state.runs)

    def run(self, run_id: str) -> Run | None:
        return self._state.find_run(run_id)

    def runs_for(self, activity_id: str, variant_id: str | None = None) -> list[Run]:
        return [
            r
            for r in self._state.runs
            if r.activity_id == activity_id and (variant_id is None or r.variant_id == variant_id)
        ]

    def time_remaining(self, run_id: str, now: int | None = None) -> int:
        """Milliseconds until the run is due. Raises KeyError for unknown runs."""
        run = self._state.find_run(run_id)
        if run is None:
            raise KeyError(run_id)
        return run.remaining(self._state.now if now is None else now)

    # --- Internal helpers ---

    def _members(self, crew_ids: list[str]) -> list[CrewMember]:
        members = []
        for cid in crew_ids:
            member = self._state.roster.get(cid)
            if member is not None:
                members.append(member)
        return members

    def _names(self, run: Run) -> tuple[str, str]:
        activity = self._content.activity(run.activity_id)
        variant = activity.variant(run.variant_id) if activity is not None else None
        return (
            activity.name if activity is not None else "Unknown",
            variant.name if variant is not None else "Unknown",
        )

    def _check_not_resolving(self, operation: str) -> None:
        if self._resolving:
            raise RuntimeError(f"{operation}() cannot be called while a run is resolving")
