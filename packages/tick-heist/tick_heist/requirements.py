"""Crew/item requirements: validation of a proposed crew and greedy auto-assignment."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from tick_heist.crew import CrewMember
from tick_heist.types import Failure, Result

if TYPE_CHECKING:
    from tick_heist.state import EngineState


@dataclass(frozen=True)
class StaffRequirement:
    """One crew line of a variant's requirements.

    Attributes:
        role_id: Role the assigned members must have.
        count: Number of members needed for the line.
        stars_min: At least one matching member must reach this tier (0 = none).
        required: Optional lines may be filled by zero crew.
    """

    role_id: str
    count: int = 1
    stars_min: int = 0
    required: bool = True

    def __post_init__(self) -> None:
        if not self.role_id:
            raise ValueError("StaffRequirement role_id must be non-empty")
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        if self.stars_min < 0:
            raise ValueError(f"stars_min must be >= 0, got {self.stars_min}")


@dataclass(frozen=True)
class Requirements:
    """Crew lines plus items/buildings that must be held (not consumed)."""

    staff: tuple[StaffRequirement, ...] = field(default_factory=tuple)
    items: dict[str, int] = field(default_factory=dict)
    buildings: dict[str, int] = field(default_factory=dict)


def _not_met(message: str) -> Result:
    return Result.fail(Failure.REQUIREMENT_NOT_MET, message)


def validate(
    requirements: Requirements | None,
    crew_ids: Sequence[str],
    state: EngineState,
    now: int,
) -> Result:
    """Check *crew_ids* against *requirements*. Never raises for bad input.

    A member counts toward one required line only; lines of the same role
    take the best-starred unused members first, the same way
    :func:`auto_assign` fills them.
    """
    roster = state.roster
    seen: set[str] = set()
    members: list[CrewMember] = []
    for cid in crew_ids:
        if cid in seen:
            return _not_met(f"Crew member {cid} assigned twice")
        seen.add(cid)
        member = roster.get(cid)
        if member is None:
            return _not_met(f"Unknown crew member {cid}")
        if not member.is_available(now):
            return _not_met(f"{member.name} is not available")
        members.append(member)

    if requirements is None:
        return Result.success()

    used: set[str] = set()
    for line in requirements.staff:
        if not line.required:
            continue
        matching = sorted(
            (m for m in members if m.role_id == line.role_id and m.id not in used),
            key=lambda m: -roster.stars(m),
        )
        if len(matching) < line.count:
            return _not_met(f"Need {line.count} {line.role_id}")
        if line.stars_min and not any(roster.stars(m) >= line.stars_min for m in matching):
            return _not_met(f"Need {line.stars_min}★ {line.role_id}")
        used.update(m.id for m in matching[: line.count])

    for group in (requirements.items, requirements.buildings):
        for item_id, needed in group.items():
            if state.ledger.item_count(item_id) < needed:
                return _not_met(f"Need {needed} {item_id}")

    return Result.success()


def _assign(
    requirements: Requirements | None, state: EngineState, now: int
) -> tuple[list[str] | None, str]:
    if requirements is None or not requirements.staff:
        return [], ""
    roster = state.roster
    lines = requirements.staff
    picks: list[list[str]] = [[] for _ in lines]
    taken: set[str] = set()
    # required lines first so an optional line never starves a required one
    order = [i for i, line in enumerate(lines) if line.required]
    order += [i for i, line in enumerate(lines) if not line.required]
    for index in order:
        line = lines[index]
        candidates = [
            m
            for m in roster.members()
            if m.role_id == line.role_id and m.is_available(now) and m.id not in taken
        ]
        # sorted() is stable, so equal stars keep roster order
        candidates = sorted(candidates, key=lambda m: -roster.stars(m))
        if line.required:
            if len(candidates) < line.count:
                return None, (
                    f"Need {line.count} {line.role_id}, only {len(candidates)} available"
                )
            if line.stars_min and not any(
                roster.stars(m) >= line.stars_min for m in candidates
            ):
                return None, f"Need {line.stars_min}★ {line.role_id}"
        picks[index] = [m.id for m in candidates[: line.count]]
        taken.update(picks[index])
    return [cid for line_picks in picks for cid in line_picks], ""


def auto_assign(
    requirements: Requirements | None, state: EngineState, now: int
) -> list[str] | None:
    """Pick crew for every line, best stars first.

    Required lines are filled before optional ones; the result keeps the
    declared line order.

    Returns ``None`` when a required line cannot be filled; an empty list
    means no crew was needed.
    """
    ids, _ = _assign(requirements, state, now)
    return ids


def explain_auto_assign(
    requirements: Requirements | None, state: EngineState, now: int
) -> str:
    """Reason auto-assignment fails, or an empty string if it succeeds."""
    _, reason = _assign(requirements, state, now)
    return reason
