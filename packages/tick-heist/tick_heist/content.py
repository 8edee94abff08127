"""Static content definitions, the registry, and the plain-data loader.

Content arrives from an external loader as plain dicts/lists with the
authored camelCase keys. ``load_content`` turns it into frozen dataclasses;
entries that fail validation are skipped, logged and listed in
``ContentRegistry.rejected`` so one broken entry never reaches the engine.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from tick_heist.conditions import Condition, parse_condition, parse_conditions
from tick_heist.crew import CrewMember, Role, StarTier
from tick_heist.effects import parse_effects
from tick_heist.requirements import Requirements, StaffRequirement
from tick_heist.resolution import (
    Deterministic,
    HeatAbove,
    HeatBelow,
    Jail,
    Modifier,
    ModifierEffects,
    NoResolution,
    Outcome,
    RangedOutputs,
    Resolution,
    StaffRole,
    StaffStars,
    UnknownModifier,
    WeightedOutcomes,
    WhenCondition,
)
from tick_heist.types import Amount, Bundle, ContentError, CrewStatus, Range

logger = logging.getLogger("tick_heist.content")


@dataclass(frozen=True)
class Branch:
    id: str
    name: str = ""
    order: int = 0
    revealed_by_default: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Branch id must be non-empty")


@dataclass(frozen=True)
class ResourceDef:
    """Resource type definition.

    Attributes:
        id: Resource identifier used in costs, outputs and conditions.
        name: Display name.
        revealed_by_default: Visible from the start of a game.
        initial: Starting quantity in a fresh state.
    """

    id: str
    name: str = ""
    revealed_by_default: bool = False
    initial: int | float = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ResourceDef id must be non-empty")


@dataclass(frozen=True)
class Variant:
    """One way of performing an activity. Immutable content."""

    id: str
    name: str = ""
    description: str = ""
    duration_ms: int = 0
    repeatable: bool = False
    max_concurrent_runs: int | None = None
    requirements: Requirements = field(default_factory=Requirements)
    inputs: Bundle = field(default_factory=Bundle)
    resolution: Resolution = field(default_factory=NoResolution)
    modifiers: tuple[Modifier, ...] = field(default_factory=tuple)
    xp_reward: int = 0
    visible_if: tuple[Condition, ...] = field(default_factory=tuple)
    unlock_if: tuple[Condition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Variant id must be non-empty")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be >= 0, got {self.duration_ms}")
        if self.max_concurrent_runs is not None and self.max_concurrent_runs < 1:
            raise ValueError(
                f"max_concurrent_runs must be >= 1, got {self.max_concurrent_runs}"
            )
        if self.xp_reward < 0:
            raise ValueError(f"xp_reward must be >= 0, got {self.xp_reward}")
        costs = [*self.inputs.resources.values(), *self.inputs.items.values()]
        if any(isinstance(c, Range) for c in costs):
            raise ValueError("inputs must be fixed amounts")
        if any(c < 0 for c in costs):
            raise ValueError("inputs must be >= 0")


@dataclass(frozen=True)
class Activity:
    id: str
    branch_id: str = ""
    name: str = ""
    description: str = ""
    variants: tuple[Variant, ...] = field(default_factory=tuple)
    visible_if: tuple[Condition, ...] = field(default_factory=tuple)
    unlock_if: tuple[Condition, ...] = field(default_factory=tuple)
    revealed_by_default: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Activity id must be non-empty")
        ids = [v.id for v in self.variants]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Activity {self.id!r} has duplicate variant ids")

    def variant(self, variant_id: str) -> Variant | None:
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None


class ContentRegistry:
    """Stores immutable definitions in authored order."""

    def __init__(self) -> None:
        self._branches: dict[str, Branch] = {}
        self._resources: dict[str, ResourceDef] = {}
        self._roles: dict[str, Role] = {}
        self._activities: dict[str, Activity] = {}
        self.initial_crew: list[CrewMember] = []
        self.rejected: list[tuple[str, str, str]] = []

    # --- Registration ---

    def define_branch(self, branch: Branch) -> None:
        self._branches[branch.id] = branch

    def define_resource(self, resource: ResourceDef) -> None:
        self._resources[resource.id] = resource

    def define_role(self, role: Role) -> None:
        self._roles[role.id] = role

    def define_activity(self, activity: Activity) -> None:
        """Register an activity. Overwrites if the id exists."""
        self._activities[activity.id] = activity

    # --- Lookup ---

    def activity(self, activity_id: str) -> Activity | None:
        return self._activities.get(activity_id)

    def variant(self, activity_id: str, variant_id: str) -> Variant | None:
        activity = self._activities.get(activity_id)
        if activity is None:
            return None
        return activity.variant(variant_id)

    def role(self, role_id: str) -> Role | None:
        return self._roles.get(role_id)

    def resource(self, resource_id: str) -> ResourceDef | None:
        return self._resources.get(resource_id)

    def branch(self, branch_id: str) -> Branch | None:
        return self._branches.get(branch_id)

    def activities(self) -> list[Activity]:
        return list(self._activities.values())

    def roles(self) -> list[Role]:
        return list(self._roles.values())

    def resources(self) -> list[ResourceDef]:
        return list(self._resources.values())

    def branches(self) -> list[Branch]:
        return sorted(self._branches.values(), key=lambda b: b.order)

    def dangling_references(self) -> list[str]:
        """Describe references to branches or roles that are not defined."""
        problems: list[str] = []
        for activity in self._activities.values():
            if self._branches and activity.branch_id and activity.branch_id not in self._branches:
                problems.append(f"{activity.id}: unknown branch {activity.branch_id!r}")
            for variant in activity.variants:
                for line in variant.requirements.staff:
                    if self._roles and line.role_id not in self._roles:
                        problems.append(
                            f"{activity.id}.{variant.id}: unknown role {line.role_id!r}"
                        )
        return problems


# --- Parsing helpers ---


def _amount(value: Any, where: str) -> Amount:
    if isinstance(value, bool):
        raise ContentError(f"{where}: amount must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, dict) and "min" in value and "max" in value:
        try:
            return Range(int(value["min"]), int(value["max"]))
        except ValueError as exc:
            raise ContentError(f"{where}: {exc}") from exc
    raise ContentError(f"{where}: amount must be a number or {{min, max}}, got {value!r}")


def _amount_map(data: Any, where: str) -> dict[str, Amount]:
    if not data:
        return {}
    if not isinstance(data, dict):
        raise ContentError(f"{where}: expected a mapping, got {type(data).__name__}")
    return {key: _amount(value, f"{where}.{key}") for key, value in data.items()}


def parse_bundle(data: Any, where: str = "bundle", extra_items: Any = None) -> Bundle:
    """``{"resources": {...}, "items": {...}}`` with numbers or ``{min, max}``."""
    if not data:
        data = {}
    if not isinstance(data, dict):
        raise ContentError(f"{where}: expected a mapping, got {type(data).__name__}")
    items = _amount_map(data.get("items"), f"{where}.items")
    items.update(_amount_map(extra_items, f"{where}.items"))
    return Bundle(resources=_amount_map(data.get("resources"), f"{where}.resources"), items=items)


def _count_map(data: Any, id_key: str, where: str) -> dict[str, int]:
    if not data:
        return {}
    if isinstance(data, dict):
        return {k: int(v) for k, v in data.items()}
    if isinstance(data, list):
        result: dict[str, int] = {}
        for entry in data:
            if id_key not in entry:
                raise ContentError(f"{where}: entry is missing {id_key!r}")
            result[entry[id_key]] = int(entry.get("count", 1))
        return result
    raise ContentError(f"{where}: expected a mapping or list")


def parse_requirements(data: Any) -> Requirements:
    if not data:
        return Requirements()
    staff = tuple(
        StaffRequirement(
            role_id=line.get("roleId", ""),
            count=int(line.get("count", 1)),
            stars_min=int(line.get("starsMin") or 0),
            required=bool(line.get("required", True)),
        )
        for line in data.get("staff", [])
    )
    return Requirements(
        staff=staff,
        items=_count_map(data.get("items"), "itemId", "requirements.items"),
        buildings=_count_map(data.get("buildings"), "buildingId", "requirements.buildings"),
    )


def _jail(data: Any) -> Jail | None:
    if not data:
        return None
    if "durationMs" not in data:
        raise ContentError("jail is missing 'durationMs'")
    return Jail(duration_ms=int(data["durationMs"]))


def _reputation(data: dict[str, Any], where: str) -> Amount:
    value = data.get("credDelta", data.get("reputationDelta", 0))
    return _amount(value, f"{where}.credDelta")


def parse_outcome(data: dict[str, Any]) -> Outcome:
    oid = data.get("id", "")
    where = f"outcome {oid!r}"
    return Outcome(
        id=oid,
        weight=_amount(data.get("weight", 0), f"{where}.weight"),
        outputs=parse_bundle(data.get("outputs"), f"{where}.outputs", data.get("items")),
        heat_delta=_amount(data.get("heatDelta", 0), f"{where}.heatDelta"),
        reputation_delta=_reputation(data, where),
        effects=parse_effects(data.get("effects")),
        jail=_jail(data.get("jail")),
    )


def parse_resolution(data: Any) -> Resolution:
    """Build a resolution; unknown or missing types become NoResolution."""
    if not data:
        return NoResolution(reason="missing resolution")
    rtype = data.get("type")
    if rtype == "weighted_outcomes":
        return WeightedOutcomes(
            outcomes=tuple(parse_outcome(o) for o in data.get("outcomes", []))
        )
    if rtype in ("deterministic", "ranged_outputs"):
        where = f"{rtype} resolution"
        fields = dict(
            outputs=parse_bundle(data.get("outputs"), f"{where}.outputs", data.get("items")),
            heat_delta=_amount(data.get("heatDelta", 0), f"{where}.heatDelta"),
            reputation_delta=_reputation(data, where),
            effects=parse_effects(data.get("effects")),
            jail=_jail(data.get("jail")),
        )
        if rtype == "deterministic":
            return Deterministic(**fields)
        return RangedOutputs(**fields)
    logger.warning("Unknown resolution type %r; runs will resolve to nothing", rtype)
    return NoResolution(reason=f"unknown resolution type {rtype!r}")


_EFFECT_KEYS = {
    "durationMultiplier": "duration_multiplier",
    "heatDeltaBonus": "heat_delta_bonus",
    "heatDeltaMultiplier": "heat_delta_multiplier",
    "heatDeltaReduction": "heat_delta_multiplier",
    "credDeltaBonus": "reputation_delta_bonus",
    "reputationDeltaBonus": "reputation_delta_bonus",
    "credDeltaMultiplier": "reputation_delta_multiplier",
    "reputationDeltaMultiplier": "reputation_delta_multiplier",
}

_MULTIPLIERS = {"duration_multiplier", "heat_delta_multiplier", "reputation_delta_multiplier"}


def parse_modifier_effects(data: Any) -> ModifierEffects:
    """Accepts ``outcomeWeightAdjustment`` maps and ``<outcome>WeightDelta`` keys."""
    if not data:
        return ModifierEffects()
    weights: dict[str, int | float] = {}
    for outcome_id, delta in (data.get("outcomeWeightAdjustment") or {}).items():
        weights[outcome_id] = weights.get(outcome_id, 0) + delta
    values: dict[str, float] = {}
    for key, value in data.items():
        if key.endswith("WeightDelta"):
            outcome_id = key[: -len("WeightDelta")]
            weights[outcome_id] = weights.get(outcome_id, 0) + value
        elif key in _EFFECT_KEYS:
            name = _EFFECT_KEYS[key]
            if name in _MULTIPLIERS:
                values[name] = values.get(name, 1.0) * value
            else:
                values[name] = values.get(name, 0) + value
    return ModifierEffects(outcome_weights=weights, **values)


_CONDITION_MODIFIERS = (
    "flagIs",
    "resourceGte",
    "itemGte",
    "staffStarsGte",
    "activityCompletedGte",
)


def parse_modifier(data: dict[str, Any]) -> Modifier:
    mtype = data.get("type")
    if mtype == "staffStars":
        return StaffStars(
            role_id=data.get("roleId", ""),
            per_star=parse_modifier_effects(data.get("applyPerStar")),
        )
    effects = parse_modifier_effects(data.get("effects"))
    if mtype == "staffRole":
        return StaffRole(role_id=data.get("roleId", ""), effects=effects)
    if mtype == "heatAbove":
        return HeatAbove(threshold=data.get("threshold", 0), effects=effects)
    if mtype == "heatBelow":
        return HeatBelow(threshold=data.get("threshold", 0), effects=effects)
    if mtype in _CONDITION_MODIFIERS:
        cond = {k: v for k, v in data.items() if k != "effects"}
        return WhenCondition(condition=parse_condition(cond), effects=effects)
    if mtype == "when":
        return WhenCondition(condition=parse_condition(data.get("condition", {})), effects=effects)
    return UnknownModifier(type=str(mtype))


def _xp_reward(data: dict[str, Any]) -> int:
    rewards = data.get("xpRewards")
    if isinstance(rewards, dict):
        return int(rewards.get("onComplete", 0) or 0)
    return int(data.get("xpReward", 0) or 0)


def parse_variant(data: dict[str, Any]) -> Variant:
    if "durationMs" not in data:
        raise ContentError(f"variant {data.get('id')!r} is missing 'durationMs'")
    max_runs = data.get("maxConcurrentRuns")
    return Variant(
        id=data.get("id", ""),
        name=data.get("name", ""),
        description=data.get("description", ""),
        duration_ms=int(data["durationMs"]),
        repeatable=bool(data.get("repeatable", False)),
        max_concurrent_runs=None if max_runs is None else int(max_runs),
        requirements=parse_requirements(data.get("requirements")),
        inputs=parse_bundle(data.get("inputs"), f"variant {data.get('id')!r} inputs"),
        resolution=parse_resolution(data.get("resolution")),
        modifiers=tuple(parse_modifier(m) for m in data.get("modifiers") or []),
        xp_reward=_xp_reward(data),
        visible_if=parse_conditions(data.get("visibleIf")),
        unlock_if=parse_conditions(data.get("unlockIf")),
    )


def parse_role(data: dict[str, Any]) -> Role:
    tiers = tuple(
        StarTier(stars=int(t["stars"]), min_xp=int(t["minXp"]))
        for t in data.get("xpToStars") or []
    )
    return Role(
        id=data.get("id", ""),
        name=data.get("name", ""),
        xp_to_stars=tiers,
        revealed_by_default=bool(data.get("revealedByDefault", False)),
    )


def parse_crew_member(data: dict[str, Any]) -> CrewMember:
    for key in ("id", "roleId"):
        if not data.get(key):
            raise ContentError(f"crew member is missing {key!r}")
    return CrewMember(
        id=data["id"],
        name=data.get("name", data["id"]),
        role_id=data["roleId"],
        xp=int(data.get("xp", 0)),
        status=CrewStatus(data.get("status", "available")),
        unavailable_until=int(data.get("unavailableUntil", 0)),
    )


_ENTRY_ERRORS = (ContentError, ValueError, TypeError, KeyError, AttributeError)


def _quarantine(registry: ContentRegistry, kind: str, entry: Any, exc: Exception) -> None:
    entry_id = entry.get("id", "?") if isinstance(entry, dict) else "?"
    logger.warning("Rejected %s %r: %s", kind, entry_id, exc)
    registry.rejected.append((kind, str(entry_id), str(exc)))


def _parse_activity(registry: ContentRegistry, data: dict[str, Any]) -> Activity:
    variants: list[Variant] = []
    for vdata in data.get("options", data.get("variants")) or []:
        try:
            variants.append(parse_variant(vdata))
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, f"variant of {data.get('id')!r}", vdata, exc)
    if not variants:
        raise ContentError(f"activity {data.get('id')!r} has no usable variants")
    return Activity(
        id=data.get("id", ""),
        branch_id=data.get("branchId", ""),
        name=data.get("name", ""),
        description=data.get("description", ""),
        variants=tuple(variants),
        visible_if=parse_conditions(data.get("visibleIf")),
        unlock_if=parse_conditions(data.get("unlockIf")),
        revealed_by_default=bool(data.get("revealedByDefault", False)),
    )


def _each(
    registry: ContentRegistry, kind: str, entries: Iterable[Any] | None
) -> Iterable[dict[str, Any]]:
    for entry in entries or []:
        if not isinstance(entry, dict):
            _quarantine(registry, kind, entry, ContentError("entry must be a mapping"))
            continue
        yield entry


def load_content(data: dict[str, Any]) -> ContentRegistry:
    """Build a registry from plain content data.

    Recognised top-level keys: ``branches``, ``resources``, ``roles``,
    ``activities`` and ``crew`` (initial staff).
    """
    registry = ContentRegistry()
    for entry in _each(registry, "branch", data.get("branches")):
        try:
            registry.define_branch(
                Branch(
                    id=entry.get("id", ""),
                    name=entry.get("name", ""),
                    order=int(entry.get("order", 0)),
                    revealed_by_default=bool(entry.get("revealedByDefault", False)),
                )
            )
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, "branch", entry, exc)
    for entry in _each(registry, "resource", data.get("resources")):
        try:
            registry.define_resource(
                ResourceDef(
                    id=entry.get("id", ""),
                    name=entry.get("name", ""),
                    revealed_by_default=bool(entry.get("revealedByDefault", False)),
                    initial=_amount(entry.get("initial", entry.get("value", 0)), "initial"),
                )
            )
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, "resource", entry, exc)
    for entry in _each(registry, "role", data.get("roles")):
        try:
            registry.define_role(parse_role(entry))
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, "role", entry, exc)
    for entry in _each(registry, "activity", data.get("activities")):
        try:
            registry.define_activity(_parse_activity(registry, entry))
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, "activity", entry, exc)
    for entry in _each(registry, "crew member", data.get("crew", data.get("initialStaff"))):
        try:
            registry.initial_crew.append(parse_crew_member(entry))
        except _ENTRY_ERRORS as exc:
            _quarantine(registry, "crew member", entry, exc)

    for problem in registry.dangling_references():
        logger.warning("Content reference problem: %s", problem)
    return registry
