"""Run - one in-flight execution of a variant. Mutable, serializable."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tick_heist.resolution import ModifierTotals
from tick_heist.types import Bundle

INFINITE = -1


@dataclass
class RunSnapshot:
    """What was decided when the run started.

    Attributes:
        inputs_paid: Costs debited at start (never refunded).
        planned_outcome_id: Pre-rolled outcome for weighted resolutions.
        roll: The raw roll that chose it.
        modifiers: Modifier totals computed from the crew at start.
    """

    inputs_paid: Bundle = field(default_factory=Bundle)
    planned_outcome_id: str | None = None
    roll: float | None = None
    modifiers: ModifierTotals = field(default_factory=ModifierTotals)


@dataclass
class Run:
    """Runtime record of a started variant.

    ``runs_left``: 0 = single run, -1 = repeat forever, N > 0 = N more
    iterations after this one.
    """

    run_id: str
    activity_id: str
    variant_id: str
    started_at: int
    ends_at: int
    crew_ids: list[str] = field(default_factory=list)
    runs_left: int = 0
    snapshot: RunSnapshot = field(default_factory=RunSnapshot)

    @property
    def duration_ms(self) -> int:
        return self.ends_at - self.started_at

    def is_due(self, now: int) -> bool:
        return self.ends_at <= now

    def remaining(self, now: int) -> int:
        return max(0, self.ends_at - now)

    def progress(self, now: int) -> float:
        if self.duration_ms <= 0:
            return 1.0
        return min(1.0, max(0.0, (now - self.started_at) / self.duration_ms))

    def next_runs_left(self) -> int:
        if self.runs_left == INFINITE:
            return INFINITE
        return max(0, self.runs_left - 1)

    def wants_repeat(self) -> bool:
        return self.runs_left == INFINITE or self.runs_left > 0

    def to_dict(self) -> dict[str, Any]:
        snap = self.snapshot
        return {
            "run_id": self.run_id,
            "activity_id": self.activity_id,
            "variant_id": self.variant_id,
            "started_at": self.started_at,
            "ends_at": self.ends_at,
            "crew_ids": list(self.crew_ids),
            "runs_left": self.runs_left,
            "snapshot": {
                "inputs_paid": {
                    "resources": dict(snap.inputs_paid.resources),
                    "items": dict(snap.inputs_paid.items),
                },
                "planned_outcome_id": snap.planned_outcome_id,
                "roll": snap.roll,
                "modifiers": snap.modifiers.to_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Run:
        snap = data.get("snapshot", {})
        paid = snap.get("inputs_paid", {})
        return cls(
            run_id=data["run_id"],
            activity_id=data["activity_id"],
            variant_id=data["variant_id"],
            started_at=data["started_at"],
            ends_at=data["ends_at"],
            crew_ids=list(data.get("crew_ids", [])),
            runs_left=data.get("runs_left", 0),
            snapshot=RunSnapshot(
                inputs_paid=Bundle(
                    resources=dict(paid.get("resources", {})),
                    items=dict(paid.get("items", {})),
                ),
                planned_outcome_id=snap.get("planned_outcome_id"),
                roll=snap.get("roll"),
                modifiers=ModifierTotals.from_dict(snap.get("modifiers", {})),
            ),
        )
