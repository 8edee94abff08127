"""EngineState - the single mutable aggregate shared by every component."""
from __future__ import annotations

from typing import Any

from tick_heist.config import EngineConfig
from tick_heist.crew import CrewRoster
from tick_heist.ledger import ResourceLedger
from tick_heist.log import GameLog
from tick_heist.run import Run

REVEAL_KINDS = ("branches", "activities", "resources", "roles", "tabs")

FlagValue = bool | int | float | str


class EngineState:
    """Resources, flags, reveals, crew, in-flight runs, counters and log.

    Passed by reference to the condition evaluator, effect applier,
    resolver and scheduler. Holds data only; ``snapshot()`` returns
    builtins that can be serialized by an external persistence layer.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        roster: CrewRoster | None = None,
        ledger: ResourceLedger | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.now: int = 0
        self.ledger = ledger if ledger is not None else ResourceLedger(self.config)
        self.roster = roster if roster is not None else CrewRoster()
        self.flags: dict[str, FlagValue] = {}
        self.reveals: dict[str, dict[str, bool]] = {kind: {} for kind in REVEAL_KINDS}
        self.runs: list[Run] = []
        self.completions: dict[str, dict[str, int]] = {"activity": {}, "variant": {}}
        self.log = GameLog(self.config.log_limit)
        self.next_run_seq: int = 0

    # --- Reveals ---

    def reveal(self, kind: str, target_id: str) -> bool:
        """Set a reveal flag. Returns True if it was not already set."""
        bucket = self.reveals.setdefault(kind, {})
        if bucket.get(target_id):
            return False
        bucket[target_id] = True
        return True

    def is_revealed(self, kind: str, target_id: str) -> bool:
        return bool(self.reveals.get(kind, {}).get(target_id, False))

    # --- Completion counters ---

    def record_completion(self, activity_id: str, variant_id: str) -> None:
        acts = self.completions["activity"]
        acts[activity_id] = acts.get(activity_id, 0) + 1
        key = f"{activity_id}:{variant_id}"
        variants = self.completions["variant"]
        variants[key] = variants.get(key, 0) + 1

    def completion_count(self, activity_id: str, variant_id: str | None = None) -> int:
        if variant_id is None:
            return self.completions["activity"].get(activity_id, 0)
        return self.completions["variant"].get(f"{activity_id}:{variant_id}", 0)

    # --- Runs ---

    def new_run_id(self) -> str:
        self.next_run_seq += 1
        return f"run_{self.next_run_seq}"

    def find_run(self, run_id: str) -> Run | None:
        for run in self.runs:
            if run.run_id == run_id:
                return run
        return None

    # --- Log ---

    def add_log(self, text: str, kind: str = "info", time: int | None = None) -> None:
        self.log.add(self.now if time is None else time, text, kind)

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "now": self.now,
            "ledger": self.ledger.snapshot(),
            "flags": dict(self.flags),
            "reveals": {kind: dict(bucket) for kind, bucket in self.reveals.items()},
            "crew": self.roster.snapshot(),
            "runs": [run.to_dict() for run in self.runs],
            "completions": {
                "activity": dict(self.completions["activity"]),
                "variant": dict(self.completions["variant"]),
            },
            "log": self.log.snapshot(),
            "next_run_seq": self.next_run_seq,
        }

    def restore(self, data: dict[str, Any]) -> None:
        self.now = data.get("now", 0)
        self.ledger.restore(data.get("ledger", {}))
        self.flags = dict(data.get("flags", {}))
        self.reveals = {kind: {} for kind in REVEAL_KINDS}
        for kind, bucket in data.get("reveals", {}).items():
            self.reveals[kind] = dict(bucket)
        self.roster.restore(data.get("crew", {}))
        self.runs = [Run.from_dict(r) for r in data.get("runs", [])]
        completions = data.get("completions", {})
        self.completions = {
            "activity": dict(completions.get("activity", {})),
            "variant": dict(completions.get("variant", {})),
        }
        self.log.restore(data.get("log", {}))
        self.next_run_seq = data.get("next_run_seq", len(self.runs))
