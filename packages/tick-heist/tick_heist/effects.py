"""Effect types produced by resolved outcomes, and their applier."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from tick_heist.types import ContentError

if TYPE_CHECKING:
    from tick_heist.state import EngineState, FlagValue


@dataclass(frozen=True)
class RevealBranch:
    branch_id: str


@dataclass(frozen=True)
class RevealActivity:
    activity_id: str


@dataclass(frozen=True)
class RevealResource:
    resource_id: str


@dataclass(frozen=True)
class RevealRole:
    role_id: str


@dataclass(frozen=True)
class RevealTab:
    tab_id: str


@dataclass(frozen=True)
class UnlockActivity:
    """Same reveal bit as RevealActivity; also logs the discovery once."""

    activity_id: str


@dataclass(frozen=True)
class SetFlag:
    key: str
    value: FlagValue = True


@dataclass(frozen=True)
class IncFlagCounter:
    key: str
    amount: int = 1


@dataclass(frozen=True)
class LogMessage:
    text: str
    kind: str = "info"


@dataclass(frozen=True)
class UnknownEffect:
    type: str


Effect = (
    RevealBranch
    | RevealActivity
    | RevealResource
    | RevealRole
    | RevealTab
    | UnlockActivity
    | SetFlag
    | IncFlagCounter
    | LogMessage
    | UnknownEffect
)

_REVEALS: dict[type, tuple[str, str]] = {
    RevealBranch: ("branches", "branch_id"),
    RevealActivity: ("activities", "activity_id"),
    RevealResource: ("resources", "resource_id"),
    RevealRole: ("roles", "role_id"),
    RevealTab: ("tabs", "tab_id"),
}


def apply_effect(effect: Effect, state: EngineState, time: int | None = None) -> None:
    reveal = _REVEALS.get(type(effect))
    if reveal is not None:
        kind, attr = reveal
        state.reveal(kind, getattr(effect, attr))
    elif isinstance(effect, UnlockActivity):
        if state.reveal("activities", effect.activity_id):
            state.add_log(f"Discovered: {effect.activity_id}", "info", time)
    elif isinstance(effect, SetFlag):
        state.flags[effect.key] = effect.value
    elif isinstance(effect, IncFlagCounter):
        current = state.flags.get(effect.key, 0)
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            current = 0
        state.flags[effect.key] = current + effect.amount
    elif isinstance(effect, LogMessage):
        state.add_log(effect.text, effect.kind, time)
    # UnknownEffect: no-op


def apply_effects(
    effects: Iterable[Effect], state: EngineState, time: int | None = None
) -> None:
    """Apply effects in declared order."""
    for effect in effects:
        apply_effect(effect, state, time)


# --- Parsing from authored content ---

_REVEAL_KEYS: dict[str, tuple[type, str]] = {
    "revealBranch": (RevealBranch, "branchId"),
    "revealActivity": (RevealActivity, "activityId"),
    "revealResource": (RevealResource, "resourceId"),
    "revealRole": (RevealRole, "roleId"),
    "revealTab": (RevealTab, "tabId"),
    "unlockActivity": (UnlockActivity, "activityId"),
}


def parse_effect(data: dict[str, Any]) -> Effect:
    if not isinstance(data, dict):
        raise ContentError(f"effect must be a mapping, got {type(data).__name__}")
    etype = data.get("type")
    if etype in _REVEAL_KEYS:
        cls, key = _REVEAL_KEYS[etype]
        if key not in data:
            raise ContentError(f"{etype} effect is missing {key!r}")
        return cls(data[key])
    if etype == "setFlag":
        if "key" not in data:
            raise ContentError("setFlag effect is missing 'key'")
        return SetFlag(key=data["key"], value=data.get("value", True))
    if etype == "incFlagCounter":
        if "key" not in data:
            raise ContentError("incFlagCounter effect is missing 'key'")
        return IncFlagCounter(key=data["key"], amount=data.get("value", 1))
    if etype == "logMessage":
        text = data.get("text", data.get("message", ""))
        return LogMessage(text=text, kind=data.get("kind", data.get("level", "info")))
    return UnknownEffect(type=str(etype))


def parse_effects(data: Iterable[dict[str, Any]] | None) -> tuple[Effect, ...]:
    if not data:
        return ()
    return tuple(parse_effect(d) for d in data)
