"""Engine - wires content, state, RNG and the run scheduler together."""
from __future__ import annotations

import dataclasses
import logging
import os
import random
from typing import Any, Callable, Iterable

from tick_heist.conditions import evaluate_all
from tick_heist.config import EngineConfig
from tick_heist.content import ContentRegistry
from tick_heist.crew import CrewMember, CrewRoster
from tick_heist.log import LogEntry
from tick_heist.resolution import AppliedOutcome
from tick_heist.run import Run
from tick_heist.scheduler import RunScheduler
from tick_heist.state import EngineState
from tick_heist.types import Result, SnapshotError

logger = logging.getLogger("tick_heist.engine")

_SNAPSHOT_VERSION = 1


class Engine:
    """Public entry point for a game session.

    Time is supplied by the host as integer milliseconds; the engine never
    reads a clock itself (see ``tick_heist.driver.Ticker``).
    """

    def __init__(
        self,
        content: ContentRegistry,
        config: EngineConfig | None = None,
        seed: int | None = None,
        crew: Iterable[CrewMember] | None = None,
        now: int = 0,
    ) -> None:
        self._content = content
        self._config = config or EngineConfig()
        if seed is None:
            seed = int.from_bytes(os.urandom(8), "big")
        self._seed = seed
        self._rng = random.Random(seed)

        roster = CrewRoster(content.roles())
        for member in content.initial_crew if crew is None else crew:
            roster.add(dataclasses.replace(member))
        self._state = EngineState(self._config, roster=roster)
        self._state.now = now
        self._apply_defaults()

        self._start_hooks: list[Callable[[Run], None]] = []
        self._complete_hooks: list[Callable[[Run, AppliedOutcome], None]] = []
        self._stop_hooks: list[Callable[[Run], None]] = []
        self._scheduler = RunScheduler(
            content,
            self._state,
            self._rng,
            on_start=self._fire_start,
            on_complete=self._fire_complete,
            on_stop=self._fire_stop,
        )

    def _apply_defaults(self) -> None:
        state = self._state
        for branch in self._content.branches():
            if branch.revealed_by_default:
                state.reveal("branches", branch.id)
        for resource in self._content.resources():
            if resource.revealed_by_default:
                state.reveal("resources", resource.id)
            if resource.initial:
                state.ledger.add_resource(resource.id, resource.initial)
        for role in self._content.roles():
            if role.revealed_by_default:
                state.reveal("roles", role.id)
        for activity in self._content.activities():
            if activity.revealed_by_default:
                state.reveal("activities", activity.id)

    # --- Properties ---

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def content(self) -> ContentRegistry:
        return self._content

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def now(self) -> int:
        return self._state.now

    # --- Hooks ---

    def on_run_start(self, hook: Callable[[Run], None]) -> None:
        self._start_hooks.append(hook)

    def on_run_complete(self, hook: Callable[[Run, AppliedOutcome], None]) -> None:
        self._complete_hooks.append(hook)

    def on_run_stop(self, hook: Callable[[Run], None]) -> None:
        self._stop_hooks.append(hook)

    def _fire_start(self, run: Run) -> None:
        for hook in self._start_hooks:
            hook(run)

    def _fire_complete(self, run: Run, applied: AppliedOutcome) -> None:
        for hook in self._complete_hooks:
            hook(run, applied)

    def _fire_stop(self, run: Run) -> None:
        for hook in self._stop_hooks:
            hook(run)

    # --- Commands ---

    def start(
        self,
        activity_id: str,
        variant_id: str,
        crew_ids: list[str] | None = None,
        runs_left: int = 0,
        now: int | None = None,
    ) -> Result:
        return self._scheduler.start(activity_id, variant_id, crew_ids, runs_left, now)

    def advance(self, now: int) -> list[Run]:
        return self._scheduler.advance(now)

    def stop_run(self, run_id: str) -> Result:
        return self._scheduler.stop_run(run_id)

    def stop_repeat(self, run_id: str) -> Result:
        return self._scheduler.stop_repeat(run_id)

    def hire(self, name: str, role_id: str, xp: int = 0) -> CrewMember:
        """Add a new crew member. Raises ValueError for an undefined role."""
        if self._content.role(role_id) is None:
            raise ValueError(f"Unknown role {role_id!r}")
        member = self._state.roster.hire(name, role_id, xp)
        self._state.reveal("roles", role_id)
        self._state.add_log(f"Hired {name}.", "success")
        return member

    # --- Queries ---

    def runs(self) -> list[Run]:
        return self._scheduler.runs()

    def run(self, run_id: str) -> Run | None:
        return self._scheduler.run(run_id)

    def time_remaining(self, run_id: str, now: int | None = None) -> int:
        return self._scheduler.time_remaining(run_id, now)

    def crew(self) -> list[CrewMember]:
        return self._state.roster.members()

    def stars(self, member_id: str) -> int:
        member = self._state.roster.get(member_id)
        if member is None:
            raise KeyError(member_id)
        return self._state.roster.stars(member)

    def log(self, kind: str | None = None) -> list[LogEntry]:
        return self._state.log.query(kind)

    def completions(self, activity_id: str, variant_id: str | None = None) -> int:
        return self._state.completion_count(activity_id, variant_id)

    def resource(self, resource_id: str) -> int | float:
        return self._state.ledger.count(resource_id)

    def is_visible(self, activity_id: str, variant_id: str | None = None) -> bool:
        return self._gate(activity_id, variant_id, "visible_if")

    def is_unlocked(self, activity_id: str, variant_id: str | None = None) -> bool:
        return self._gate(activity_id, variant_id, "unlock_if")

    def _gate(self, activity_id: str, variant_id: str | None, attr: str) -> bool:
        activity = self._content.activity(activity_id)
        if activity is None:
            return False
        conditions = list(getattr(activity, attr))
        if variant_id is not None:
            variant = activity.variant(variant_id)
            if variant is None:
                return False
            conditions.extend(getattr(variant, attr))
        return evaluate_all(conditions, self._state, self._config.strict_conditions)

    # --- Snapshot ---

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible dict of everything needed to resume the session."""
        return {
            "version": _SNAPSHOT_VERSION,
            "seed": self._seed,
            "rng_state": _serialize_rng_state(self._rng.getstate()),
            "state": self._state.snapshot(),
        }

    def restore(self, data: dict[str, Any], now: int | None = None) -> list[Run]:
        """Load a snapshot. With *now*, overdue runs resolve immediately.

        Returns the runs completed by that catch-up advance.
        """
        version = data.get("version")
        if version != _SNAPSHOT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot version {version!r}, expected {_SNAPSHOT_VERSION}"
            )
        try:
            seed = data["seed"]
            rng_state = _deserialize_rng_state(data["rng_state"])
            state = data["state"]
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"Malformed snapshot: {exc}") from exc

        self._seed = seed
        self._rng.setstate(rng_state)
        self._state.restore(state)
        for run in self._state.runs:
            if self._content.variant(run.activity_id, run.variant_id) is None:
                logger.warning(
                    "Restored run %s refers to undefined %s/%s",
                    run.run_id, run.activity_id, run.variant_id,
                )
        if now is None:
            return []
        return self.advance(now)


def _serialize_rng_state(state: tuple[int, tuple[int, ...], float | None]) -> list[Any]:
    """Convert Random.getstate() tuple to JSON-compatible list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def _deserialize_rng_state(data: list[Any]) -> tuple[int, tuple[int, ...], float | None]:
    """Convert JSON list back to Random.setstate() tuple."""
    version, internalstate, gauss_next = data
    return (version, tuple(internalstate), gauss_next)
