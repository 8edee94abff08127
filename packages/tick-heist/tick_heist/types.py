"""Shared value types, result values and exceptions for tick-heist."""
from __future__ import annotations

import random as _random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from tick_heist.run import Run


@dataclass(frozen=True)
class Range:
    """Inclusive integer range sampled uniformly at application time."""

    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Range min {self.min} exceeds max {self.max}")

    def sample(self, rng: _random.Random) -> int:
        return rng.randint(self.min, self.max)


Amount = Union[int, float, Range]


def resolve_amount(amount: Amount | None, rng: _random.Random) -> int | float:
    """Return a concrete number for a fixed amount or a Range."""
    if amount is None:
        return 0
    if isinstance(amount, Range):
        return amount.sample(rng)
    return amount


@dataclass(frozen=True)
class Bundle:
    """Resource and item quantities, used for both costs and outputs."""

    resources: dict[str, Amount] = field(default_factory=dict)
    items: dict[str, Amount] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.resources and not self.items


class Failure(Enum):
    """Why a public engine operation was refused."""

    NOT_FOUND = "not_found"
    HIDDEN = "hidden"
    LOCKED = "locked"
    CONCURRENCY_LIMIT = "concurrency_limit"
    NOT_REPEATABLE = "not_repeatable"
    NO_CREW = "no_crew"
    REQUIREMENT_NOT_MET = "requirement_not_met"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    RUN_NOT_FOUND = "run_not_found"


@dataclass(frozen=True)
class Result:
    """Outcome of a public operation. Failures carry a reason and a message."""

    ok: bool
    reason: Failure | None = None
    message: str = ""
    run: Run | None = None

    @classmethod
    def success(cls, run: Run | None = None, message: str = "") -> Result:
        return cls(ok=True, run=run, message=message)

    @classmethod
    def fail(cls, reason: Failure, message: str) -> Result:
        return cls(ok=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.ok


class CrewStatus(Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


class ContentError(ValueError):
    """Raised when authored content cannot be turned into definitions."""


class SnapshotError(Exception):
    """Raised on restore failures (version mismatch, malformed data)."""
