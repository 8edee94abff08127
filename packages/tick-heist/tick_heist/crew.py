"""Roles, crew members and the roster that tracks their availability."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from tick_heist.types import CrewStatus


@dataclass(frozen=True)
class StarTier:
    stars: int
    min_xp: int

    def __post_init__(self) -> None:
        if self.stars < 0:
            raise ValueError(f"stars must be >= 0, got {self.stars}")
        if self.min_xp < 0:
            raise ValueError(f"min_xp must be >= 0, got {self.min_xp}")


@dataclass(frozen=True)
class Role:
    """Immutable crew role definition. Not serialized.

    Attributes:
        id: Unique role identifier.
        name: Display name.
        xp_to_stars: Threshold table; stars come from the highest tier reached.
        revealed_by_default: Role is visible from the start of a game.
    """

    id: str
    name: str = ""
    xp_to_stars: tuple[StarTier, ...] = field(default_factory=tuple)
    revealed_by_default: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Role id must be non-empty")

    def stars_for(self, xp: int | float) -> int:
        stars = 0
        best_xp = -1
        for tier in self.xp_to_stars:
            if tier.min_xp <= xp and tier.min_xp >= best_xp:
                best_xp = tier.min_xp
                stars = tier.stars
        return stars


@dataclass
class CrewMember:
    """Runtime crew state. Mutable, serializable."""

    id: str
    name: str
    role_id: str
    xp: int = 0
    status: CrewStatus = CrewStatus.AVAILABLE
    unavailable_until: int = 0

    def is_available(self, now: int) -> bool:
        if self.status is CrewStatus.AVAILABLE:
            return True
        return self.status is CrewStatus.UNAVAILABLE and self.unavailable_until <= now


class CrewRoster:
    """Ordered collection of crew members plus the role table for stars."""

    def __init__(self, roles: Iterable[Role] = ()) -> None:
        self._roles: dict[str, Role] = {r.id: r for r in roles}
        self._members: dict[str, CrewMember] = {}
        self._hire_seq = 0

    # --- Membership ---

    def add(self, member: CrewMember) -> None:
        """Add a member. Raises ValueError on a duplicate id."""
        if member.id in self._members:
            raise ValueError(f"Crew member {member.id!r} already exists")
        self._members[member.id] = member

    def hire(self, name: str, role_id: str, xp: int = 0) -> CrewMember:
        """Create a new available member with a generated ``s_###`` id."""
        while True:
            self._hire_seq += 1
            member_id = f"s_{self._hire_seq:03d}"
            if member_id not in self._members:
                break
        member = CrewMember(id=member_id, name=name, role_id=role_id, xp=xp)
        self._members[member_id] = member
        return member

    def get(self, member_id: str) -> CrewMember | None:
        return self._members.get(member_id)

    def has(self, member_id: str) -> bool:
        return member_id in self._members

    def members(self) -> list[CrewMember]:
        """All members in roster order."""
        return list(self._members.values())

    def role(self, role_id: str) -> Role | None:
        return self._roles.get(role_id)

    def stars(self, member: CrewMember) -> int:
        role = self._roles.get(member.role_id)
        if role is None:
            return 0
        return role.stars_for(member.xp)

    def with_role(self, role_id: str) -> list[CrewMember]:
        return [m for m in self._members.values() if m.role_id == role_id]

    # --- Status transitions ---

    def mark_busy(self, member_ids: Iterable[str]) -> None:
        for mid in member_ids:
            member = self._members.get(mid)
            if member is not None:
                member.status = CrewStatus.BUSY
                member.unavailable_until = 0

    def release(self, member_ids: Iterable[str]) -> None:
        """Return busy members to available. Jailed members are left alone."""
        for mid in member_ids:
            member = self._members.get(mid)
            if member is not None and member.status is CrewStatus.BUSY:
                member.status = CrewStatus.AVAILABLE

    def jail(self, member_ids: Iterable[str], until: int) -> list[CrewMember]:
        jailed: list[CrewMember] = []
        for mid in member_ids:
            member = self._members.get(mid)
            if member is None:
                continue
            member.status = CrewStatus.UNAVAILABLE
            member.unavailable_until = until
            jailed.append(member)
        return jailed

    def release_expired(self, now: int) -> list[CrewMember]:
        """Bring back members whose unavailability has run out."""
        freed: list[CrewMember] = []
        for member in self._members.values():
            if member.status is CrewStatus.UNAVAILABLE and member.unavailable_until <= now:
                member.status = CrewStatus.AVAILABLE
                member.unavailable_until = 0
                freed.append(member)
        return freed

    def award_xp(self, member_ids: Iterable[str], amount: int) -> None:
        if amount <= 0:
            return
        for mid in member_ids:
            member = self._members.get(mid)
            if member is not None:
                member.xp += amount

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        """Serialize members (not roles)."""
        return {
            "hire_seq": self._hire_seq,
            "members": [
                {
                    "id": m.id,
                    "name": m.name,
                    "role_id": m.role_id,
                    "xp": m.xp,
                    "status": m.status.value,
                    "unavailable_until": m.unavailable_until,
                }
                for m in self._members.values()
            ],
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore members. Roles must be supplied at construction."""
        self._members.clear()
        for m in data.get("members", []):
            member = CrewMember(
                id=m["id"],
                name=m["name"],
                role_id=m["role_id"],
                xp=m.get("xp", 0),
                status=CrewStatus(m.get("status", "available")),
                unavailable_until=m.get("unavailable_until", 0),
            )
            self._members[member.id] = member
        self._hire_seq = data.get("hire_seq", 0)

    def __len__(self) -> int:
        return len(self._members)
