"""Engine configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Immutable tuning knobs for the run engine.

    Attributes:
        log_limit: Maximum entries kept in the game log.
        heat_resource: Resource id with heat semantics (>= 0, decays).
        reputation_resource: Resource id clamped to the reputation bounds.
        reputation_min: Lower reputation bound.
        reputation_max: Upper reputation bound.
        heat_decay_interval_ms: Real time per heat decay step.
        heat_decay_amount: Heat removed per whole decay step.
        min_duration_ms: Floor for run durations after modifiers.
        max_completions_per_advance: Cap on runs resolved by one advance call.
        strict_conditions: Unknown condition types evaluate to False.
    """

    log_limit: int = 200
    heat_resource: str = "heat"
    reputation_resource: str = "cred"
    reputation_min: int = 0
    reputation_max: int = 100
    heat_decay_interval_ms: int = 60_000
    heat_decay_amount: int = 1
    min_duration_ms: int = 0
    max_completions_per_advance: int = 1000
    strict_conditions: bool = False

    def __post_init__(self) -> None:
        if self.log_limit < 0:
            raise ValueError(f"log_limit must be >= 0, got {self.log_limit}")
        if self.reputation_min > self.reputation_max:
            raise ValueError("reputation_min must not exceed reputation_max")
        if self.heat_decay_interval_ms <= 0:
            raise ValueError(
                f"heat_decay_interval_ms must be positive, got {self.heat_decay_interval_ms}"
            )
        if self.heat_decay_amount < 0:
            raise ValueError(
                f"heat_decay_amount must be >= 0, got {self.heat_decay_amount}"
            )
        if self.min_duration_ms < 0:
            raise ValueError(f"min_duration_ms must be >= 0, got {self.min_duration_ms}")
        if self.max_completions_per_advance <= 0:
            raise ValueError("max_completions_per_advance must be positive")
