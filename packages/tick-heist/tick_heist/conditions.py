"""Condition types and the pure evaluator used for visibility and gating."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from tick_heist.types import ContentError

if TYPE_CHECKING:
    from tick_heist.state import EngineState, FlagValue

logger = logging.getLogger("tick_heist.conditions")


# --- Leaf conditions ---


@dataclass(frozen=True)
class FlagIs:
    key: str
    value: FlagValue = True


@dataclass(frozen=True)
class ResourceGte:
    resource_id: str
    value: int | float


@dataclass(frozen=True)
class ItemGte:
    item_id: str
    value: int


@dataclass(frozen=True)
class RoleRevealed:
    role_id: str


@dataclass(frozen=True)
class ActivityRevealed:
    activity_id: str


@dataclass(frozen=True)
class StaffStarsGte:
    """True if any crew member of the role has at least *value* stars."""

    role_id: str
    value: int


@dataclass(frozen=True)
class ActivityCompletedGte:
    activity_id: str
    value: int


@dataclass(frozen=True)
class UnknownCondition:
    """Placeholder for an authored type the evaluator does not know."""

    type: str


# --- Combinators ---


@dataclass(frozen=True)
class AllOf:
    conds: tuple[Condition, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AnyOf:
    conds: tuple[Condition, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Not:
    cond: Condition


Condition = (
    FlagIs
    | ResourceGte
    | ItemGte
    | RoleRevealed
    | ActivityRevealed
    | StaffStarsGte
    | ActivityCompletedGte
    | AllOf
    | AnyOf
    | Not
    | UnknownCondition
)


def evaluate(condition: Condition, state: EngineState, strict: bool = False) -> bool:
    """Evaluate one condition against *state*. Never mutates anything.

    Unknown condition types pass unless *strict* is set, in which case they
    fail and a warning is logged.
    """
    if isinstance(condition, FlagIs):
        return state.flags.get(condition.key) == condition.value
    if isinstance(condition, ResourceGte):
        return state.ledger.count(condition.resource_id) >= condition.value
    if isinstance(condition, ItemGte):
        return state.ledger.item_count(condition.item_id) >= condition.value
    if isinstance(condition, RoleRevealed):
        return state.is_revealed("roles", condition.role_id)
    if isinstance(condition, ActivityRevealed):
        return state.is_revealed("activities", condition.activity_id)
    if isinstance(condition, StaffStarsGte):
        return any(
            state.roster.stars(m) >= condition.value
            for m in state.roster.with_role(condition.role_id)
        )
    if isinstance(condition, ActivityCompletedGte):
        return state.completion_count(condition.activity_id) >= condition.value
    if isinstance(condition, AllOf):
        return all(evaluate(c, state, strict) for c in condition.conds)
    if isinstance(condition, AnyOf):
        return any(evaluate(c, state, strict) for c in condition.conds)
    if isinstance(condition, Not):
        return not evaluate(condition.cond, state, strict)
    if strict:
        logger.warning("Unknown condition type %r treated as false", _type_name(condition))
        return False
    return True


def evaluate_all(
    conditions: Iterable[Condition], state: EngineState, strict: bool = False
) -> bool:
    """AND over a condition list. An empty list is true."""
    return all(evaluate(c, state, strict) for c in conditions)


def _type_name(condition: Any) -> str:
    if isinstance(condition, UnknownCondition):
        return condition.type
    return type(condition).__name__


# --- Parsing from authored content ---


def _require(data: dict[str, Any], key: str, ctype: str) -> Any:
    if key not in data:
        raise ContentError(f"{ctype} condition is missing {key!r}")
    return data[key]


def parse_condition(data: dict[str, Any]) -> Condition:
    """Build a condition from plain content data (``{"type": ..., ...}``)."""
    if not isinstance(data, dict):
        raise ContentError(f"condition must be a mapping, got {type(data).__name__}")
    ctype = data.get("type")
    if ctype == "flagIs":
        return FlagIs(key=_require(data, "key", ctype), value=data.get("value", True))
    if ctype == "resourceGte":
        return ResourceGte(
            resource_id=_require(data, "resourceId", ctype),
            value=_require(data, "value", ctype),
        )
    if ctype == "itemGte":
        return ItemGte(
            item_id=_require(data, "itemId", ctype), value=_require(data, "value", ctype)
        )
    if ctype == "roleRevealed":
        return RoleRevealed(role_id=_require(data, "roleId", ctype))
    if ctype == "activityRevealed":
        return ActivityRevealed(activity_id=_require(data, "activityId", ctype))
    if ctype == "staffStarsGte":
        return StaffStarsGte(
            role_id=_require(data, "roleId", ctype), value=_require(data, "value", ctype)
        )
    if ctype == "activityCompletedGte":
        return ActivityCompletedGte(
            activity_id=_require(data, "activityId", ctype),
            value=_require(data, "value", ctype),
        )
    if ctype == "allOf":
        return AllOf(conds=tuple(parse_conditions(data.get("conds", []))))
    if ctype == "anyOf":
        return AnyOf(conds=tuple(parse_conditions(data.get("conds", []))))
    if ctype == "not":
        return Not(cond=parse_condition(_require(data, "cond", ctype)))
    return UnknownCondition(type=str(ctype))


def parse_conditions(data: Iterable[dict[str, Any]] | None) -> tuple[Condition, ...]:
    if not data:
        return ()
    return tuple(parse_condition(d) for d in data)
