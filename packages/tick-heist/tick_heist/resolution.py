"""Resolution and modifier types, weighted selection and outcome application.

Weighted outcomes are rolled once, when a run starts, using the crew assigned
at that moment; the roll is stored on the run. Ranged amounts (in any
resolution) are sampled when the outcome is applied at completion.
"""
from __future__ import annotations

import logging
import random as _random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from tick_heist.conditions import Condition, evaluate
from tick_heist.effects import Effect, apply_effects
from tick_heist.types import Amount, Bundle, Range, resolve_amount

if TYPE_CHECKING:
    from tick_heist.crew import CrewMember
    from tick_heist.state import EngineState

logger = logging.getLogger("tick_heist.resolution")


# --- Resolutions ---


@dataclass(frozen=True)
class Jail:
    """Assigned crew become unavailable for *duration_ms* after completion."""

    duration_ms: int

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError(f"jail duration_ms must be >= 0, got {self.duration_ms}")


@dataclass(frozen=True)
class Outcome:
    id: str
    weight: int | float
    outputs: Bundle = field(default_factory=Bundle)
    heat_delta: Amount = 0
    reputation_delta: Amount = 0
    effects: tuple[Effect, ...] = field(default_factory=tuple)
    jail: Jail | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Outcome id must be non-empty")
        if self.weight < 0:
            raise ValueError(f"Outcome weight must be >= 0, got {self.weight}")


@dataclass(frozen=True)
class Deterministic:
    outputs: Bundle = field(default_factory=Bundle)
    heat_delta: int | float = 0
    reputation_delta: int | float = 0
    effects: tuple[Effect, ...] = field(default_factory=tuple)
    jail: Jail | None = None

    def __post_init__(self) -> None:
        amounts = [*self.outputs.resources.values(), *self.outputs.items.values()]
        amounts += [self.heat_delta, self.reputation_delta]
        if any(isinstance(a, Range) for a in amounts):
            raise ValueError("deterministic resolution cannot contain ranges")


@dataclass(frozen=True)
class RangedOutputs:
    outputs: Bundle = field(default_factory=Bundle)
    heat_delta: Amount = 0
    reputation_delta: Amount = 0
    effects: tuple[Effect, ...] = field(default_factory=tuple)
    jail: Jail | None = None


@dataclass(frozen=True)
class WeightedOutcomes:
    outcomes: tuple[Outcome, ...]

    def __post_init__(self) -> None:
        if not self.outcomes:
            raise ValueError("weighted resolution needs at least one outcome")

    def outcome(self, outcome_id: str) -> Outcome | None:
        for o in self.outcomes:
            if o.id == outcome_id:
                return o
        return None


@dataclass(frozen=True)
class NoResolution:
    """Stand-in for missing or unrecognised resolution content."""

    reason: str = ""


Resolution = Deterministic | RangedOutputs | WeightedOutcomes | NoResolution


# --- Modifiers ---


@dataclass(frozen=True)
class ModifierEffects:
    outcome_weights: dict[str, int | float] = field(default_factory=dict)
    duration_multiplier: float = 1.0
    heat_delta_bonus: int | float = 0
    heat_delta_multiplier: float = 1.0
    reputation_delta_bonus: int | float = 0
    reputation_delta_multiplier: float = 1.0


@dataclass(frozen=True)
class StaffStars:
    """Applies *per_star* once for every star held by assigned crew of the role."""

    role_id: str
    per_star: ModifierEffects = field(default_factory=ModifierEffects)


@dataclass(frozen=True)
class StaffRole:
    """Applies *effects* once if any assigned member has the role."""

    role_id: str
    effects: ModifierEffects = field(default_factory=ModifierEffects)


@dataclass(frozen=True)
class HeatAbove:
    threshold: int | float
    effects: ModifierEffects = field(default_factory=ModifierEffects)


@dataclass(frozen=True)
class HeatBelow:
    threshold: int | float
    effects: ModifierEffects = field(default_factory=ModifierEffects)


@dataclass(frozen=True)
class WhenCondition:
    condition: Condition
    effects: ModifierEffects = field(default_factory=ModifierEffects)


@dataclass(frozen=True)
class UnknownModifier:
    type: str


Modifier = StaffStars | StaffRole | HeatAbove | HeatBelow | WhenCondition | UnknownModifier


@dataclass
class ModifierTotals:
    """Folded modifier effects. Bonuses add, multipliers multiply. Serializable."""

    outcome_weights: dict[str, float] = field(default_factory=dict)
    duration_multiplier: float = 1.0
    heat_delta_bonus: float = 0
    heat_delta_multiplier: float = 1.0
    reputation_delta_bonus: float = 0
    reputation_delta_multiplier: float = 1.0

    def add(self, effects: ModifierEffects, times: int = 1) -> None:
        if times <= 0:
            return
        for outcome_id, delta in effects.outcome_weights.items():
            self.outcome_weights[outcome_id] = (
                self.outcome_weights.get(outcome_id, 0) + delta * times
            )
        self.duration_multiplier *= effects.duration_multiplier**times
        self.heat_delta_bonus += effects.heat_delta_bonus * times
        self.heat_delta_multiplier *= effects.heat_delta_multiplier**times
        self.reputation_delta_bonus += effects.reputation_delta_bonus * times
        self.reputation_delta_multiplier *= effects.reputation_delta_multiplier**times

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome_weights": dict(self.outcome_weights),
            "duration_multiplier": self.duration_multiplier,
            "heat_delta_bonus": self.heat_delta_bonus,
            "heat_delta_multiplier": self.heat_delta_multiplier,
            "reputation_delta_bonus": self.reputation_delta_bonus,
            "reputation_delta_multiplier": self.reputation_delta_multiplier,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModifierTotals:
        return cls(
            outcome_weights=dict(data.get("outcome_weights", {})),
            duration_multiplier=data.get("duration_multiplier", 1.0),
            heat_delta_bonus=data.get("heat_delta_bonus", 0),
            heat_delta_multiplier=data.get("heat_delta_multiplier", 1.0),
            reputation_delta_bonus=data.get("reputation_delta_bonus", 0),
            reputation_delta_multiplier=data.get("reputation_delta_multiplier", 1.0),
        )


def _modifier_payload(modifier: Modifier) -> ModifierEffects | None:
    if isinstance(modifier, StaffStars):
        return modifier.per_star
    if isinstance(modifier, (StaffRole, HeatAbove, HeatBelow, WhenCondition)):
        return modifier.effects
    return None


def modifier_scale(
    modifier: Modifier, crew: Sequence[CrewMember], state: EngineState
) -> int:
    """How many times a modifier applies for this crew and state (0 = not at all)."""
    if isinstance(modifier, StaffStars):
        return sum(state.roster.stars(m) for m in crew if m.role_id == modifier.role_id)
    if isinstance(modifier, StaffRole):
        return 1 if any(m.role_id == modifier.role_id for m in crew) else 0
    if isinstance(modifier, HeatAbove):
        return 1 if state.ledger.heat > modifier.threshold else 0
    if isinstance(modifier, HeatBelow):
        return 1 if state.ledger.heat < modifier.threshold else 0
    if isinstance(modifier, WhenCondition):
        return 1 if evaluate(modifier.condition, state, state.config.strict_conditions) else 0
    return 0


def compute_modifiers(
    modifiers: Sequence[Modifier], crew: Sequence[CrewMember], state: EngineState
) -> ModifierTotals:
    totals = ModifierTotals()
    for modifier in modifiers:
        payload = _modifier_payload(modifier)
        if payload is None:
            continue
        totals.add(payload, modifier_scale(modifier, crew, state))
    return totals


def adjusted_weights(
    outcomes: Sequence[Outcome],
    modifiers: Sequence[Modifier],
    crew: Sequence[CrewMember],
    state: EngineState,
) -> list[tuple[str, float]]:
    """Outcome weights after every modifier, clamped to 0 after each one."""
    weights: dict[str, float] = {o.id: o.weight for o in outcomes}
    for modifier in modifiers:
        payload = _modifier_payload(modifier)
        if payload is None or not payload.outcome_weights:
            continue
        times = modifier_scale(modifier, crew, state)
        if times <= 0:
            continue
        for outcome_id, delta in payload.outcome_weights.items():
            if outcome_id in weights:
                weights[outcome_id] = max(0, weights[outcome_id] + delta * times)
    return [(o.id, weights[o.id]) for o in outcomes]


def pick_weighted(
    pairs: Sequence[tuple[str, float]], rng: _random.Random
) -> tuple[str, float]:
    """Draw one id proportionally to weight. Returns (id, roll).

    Falls back to the first entry when every weight is zero.
    """
    if not pairs:
        raise ValueError("pick_weighted needs at least one outcome")
    total = sum(max(0, w) for _, w in pairs)
    if total <= 0:
        return pairs[0][0], 0.0
    roll = rng.random() * total
    cumulative = 0.0
    for outcome_id, weight in pairs:
        if weight <= 0:
            continue
        cumulative += weight
        if cumulative >= roll:
            return outcome_id, roll
    return pairs[0][0], roll


@dataclass
class PreRoll:
    """Decisions taken when a run starts, from the crew assigned at that moment."""

    modifiers: ModifierTotals
    outcome_id: str | None = None
    roll: float | None = None


def pre_roll(
    resolution: Resolution,
    modifiers: Sequence[Modifier],
    crew: Sequence[CrewMember],
    state: EngineState,
    rng: _random.Random,
) -> PreRoll:
    """Fold modifiers and, for weighted resolutions, draw the outcome now."""
    result = PreRoll(modifiers=compute_modifiers(modifiers, crew, state))
    if isinstance(resolution, WeightedOutcomes):
        pairs = adjusted_weights(resolution.outcomes, modifiers, crew, state)
        result.outcome_id, result.roll = pick_weighted(pairs, rng)
    return result


def effective_duration(
    duration_ms: int, totals: ModifierTotals, min_duration_ms: int = 0
) -> int:
    return max(min_duration_ms, int(round(duration_ms * totals.duration_multiplier)))


def modified_delta(value: int | float, bonus: float, multiplier: float) -> int:
    """``(value + bonus) * multiplier``, rounded to a whole number."""
    return int(round((value + bonus) * multiplier))


# --- Application at completion ---


@dataclass
class AppliedOutcome:
    """What a completed run actually did to the state."""

    outcome_id: str
    outputs: Bundle = field(default_factory=Bundle)
    heat_delta: int = 0
    reputation_delta: int = 0
    jail: Jail | None = None


def _select_payload(
    resolution: Resolution, planned_outcome_id: str | None
) -> tuple[str, Bundle, Amount, Amount, tuple[Effect, ...], Jail | None] | None:
    if isinstance(resolution, Deterministic):
        return ("deterministic", resolution.outputs, resolution.heat_delta,
                resolution.reputation_delta, resolution.effects, resolution.jail)
    if isinstance(resolution, RangedOutputs):
        return ("ranged", resolution.outputs, resolution.heat_delta,
                resolution.reputation_delta, resolution.effects, resolution.jail)
    if isinstance(resolution, WeightedOutcomes):
        outcome = resolution.outcome(planned_outcome_id) if planned_outcome_id else None
        if outcome is None:
            logger.warning("Planned outcome %r not found; run resolves to nothing",
                           planned_outcome_id)
            return None
        return (outcome.id, outcome.outputs, outcome.heat_delta,
                outcome.reputation_delta, outcome.effects, outcome.jail)
    return None


def apply_resolution(
    resolution: Resolution,
    planned_outcome_id: str | None,
    totals: ModifierTotals,
    state: EngineState,
    rng: _random.Random,
    time: int,
) -> AppliedOutcome:
    """Credit outputs, apply heat/reputation deltas and effects.

    Crew consequences (jail) are returned for the caller to apply.
    Unknown or broken resolutions apply nothing.
    """
    payload = _select_payload(resolution, planned_outcome_id)
    if payload is None:
        return AppliedOutcome(outcome_id="none")
    outcome_id, outputs, heat, reputation, effects, jail = payload

    rolled = state.ledger.credit(outputs, rng)
    heat_delta = modified_delta(
        resolve_amount(heat, rng), totals.heat_delta_bonus, totals.heat_delta_multiplier
    )
    reputation_delta = modified_delta(
        resolve_amount(reputation, rng),
        totals.reputation_delta_bonus,
        totals.reputation_delta_multiplier,
    )
    state.ledger.apply_heat_delta(heat_delta)
    state.ledger.apply_reputation_delta(reputation_delta)
    apply_effects(effects, state, time)
    return AppliedOutcome(
        outcome_id=outcome_id,
        outputs=rolled,
        heat_delta=heat_delta,
        reputation_delta=reputation_delta,
        jail=jail,
    )
