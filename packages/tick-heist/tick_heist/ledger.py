"""Resource ledger: numeric resources, items, and the heat/reputation clamps."""
from __future__ import annotations

import random as _random
from dataclasses import dataclass
from typing import Any

from tick_heist.config import EngineConfig
from tick_heist.types import Amount, Bundle, Range, resolve_amount


@dataclass(frozen=True)
class Shortfall:
    """One missing cost line: what was needed and what is held."""

    kind: str  # "resource" or "item"
    id: str
    needed: int | float
    held: int | float

    def describe(self) -> str:
        return f"Need {self.needed} {self.id} (have {self.held})"


def _fixed(amount: Amount) -> int | float:
    if isinstance(amount, Range):
        raise TypeError("costs must be fixed amounts, not ranges")
    return amount


class ResourceLedger:
    """Mutation surface for resources and items.

    Reputation is clamped to the configured bounds after every change and
    heat never goes below zero. Costs are checked in full before anything
    is debited.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        resources: dict[str, int | float] | None = None,
        items: dict[str, int] | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self.resources: dict[str, int | float] = dict(resources or {})
        self.items: dict[str, int] = dict(items or {})
        self._heat_carry_ms = 0
        for name in (self._config.heat_resource, self._config.reputation_resource):
            if name in self.resources:
                self.resources[name] = self._clamped(name, self.resources[name])

    # --- Queries ---

    def count(self, resource_id: str) -> int | float:
        return self.resources.get(resource_id, 0)

    def item_count(self, item_id: str) -> int:
        return self.items.get(item_id, 0)

    @property
    def heat(self) -> int | float:
        return self.count(self._config.heat_resource)

    @property
    def reputation(self) -> int | float:
        return self.count(self._config.reputation_resource)

    def shortfall(self, costs: Bundle | None) -> list[Shortfall]:
        """Every cost line the ledger cannot cover, resources first."""
        if costs is None:
            return []
        missing: list[Shortfall] = []
        for name, amount in costs.resources.items():
            needed = _fixed(amount)
            held = self.resources.get(name, 0)
            if held < needed:
                missing.append(Shortfall("resource", name, needed, held))
        for name, amount in costs.items.items():
            needed = _fixed(amount)
            held = self.items.get(name, 0)
            if held < needed:
                missing.append(Shortfall("item", name, needed, held))
        return missing

    def has_sufficient(self, costs: Bundle | None) -> bool:
        return not self.shortfall(costs)

    # --- Mutation ---

    def consume(self, costs: Bundle | None) -> Bundle:
        """Debit all costs. Raises ValueError, touching nothing, if any are short."""
        if costs is None:
            return Bundle()
        missing = self.shortfall(costs)
        if missing:
            raise ValueError("; ".join(s.describe() for s in missing))
        paid_resources: dict[str, Amount] = {}
        paid_items: dict[str, Amount] = {}
        for name, amount in costs.resources.items():
            value = _fixed(amount)
            self.add_resource(name, -value)
            paid_resources[name] = value
        for name, amount in costs.items.items():
            value = _fixed(amount)
            self.add_item(name, -int(value))
            paid_items[name] = value
        return Bundle(resources=paid_resources, items=paid_items)

    def credit(self, outputs: Bundle | None, rng: _random.Random) -> Bundle:
        """Add outputs, sampling any ranges. Returns the amounts actually rolled."""
        if outputs is None:
            return Bundle()
        rolled_resources: dict[str, Amount] = {}
        rolled_items: dict[str, Amount] = {}
        for name, amount in outputs.resources.items():
            value = resolve_amount(amount, rng)
            self.add_resource(name, value)
            rolled_resources[name] = value
        for name, amount in outputs.items.items():
            value = int(resolve_amount(amount, rng))
            self.add_item(name, value)
            rolled_items[name] = value
        return Bundle(resources=rolled_resources, items=rolled_items)

    def add_resource(self, resource_id: str, amount: int | float) -> None:
        current = self.resources.get(resource_id, 0)
        self.resources[resource_id] = self._clamped(resource_id, current + amount)

    def add_item(self, item_id: str, amount: int) -> None:
        remaining = self.items.get(item_id, 0) + amount
        if remaining <= 0:
            self.items.pop(item_id, None)
        else:
            self.items[item_id] = remaining

    def apply_heat_delta(self, delta: int | float) -> None:
        self.add_resource(self._config.heat_resource, delta)

    def apply_reputation_delta(self, delta: int | float) -> None:
        self.add_resource(self._config.reputation_resource, delta)

    def decay_heat(self, elapsed_ms: int) -> int | float:
        """Drop heat for every whole decay interval in *elapsed_ms*.

        Partial intervals carry over to the next call. Returns heat removed.
        """
        if elapsed_ms <= 0:
            return 0
        if self.heat <= 0:
            self._heat_carry_ms = 0
            return 0
        total = self._heat_carry_ms + elapsed_ms
        interval = self._config.heat_decay_interval_ms
        steps, self._heat_carry_ms = divmod(total, interval)
        if steps == 0:
            return 0
        before = self.heat
        self.apply_heat_delta(-steps * self._config.heat_decay_amount)
        if self.heat <= 0:
            self._heat_carry_ms = 0
        return before - self.heat

    def _clamped(self, resource_id: str, value: int | float) -> int | float:
        if resource_id == self._config.reputation_resource:
            return max(self._config.reputation_min, min(self._config.reputation_max, value))
        if resource_id == self._config.heat_resource:
            return max(0, value)
        return value

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "resources": dict(self.resources),
            "items": dict(self.items),
            "heat_carry_ms": self._heat_carry_ms,
        }

    def restore(self, data: dict[str, Any]) -> None:
        self.resources = dict(data.get("resources", {}))
        self.items = dict(data.get("items", {}))
        self._heat_carry_ms = data.get("heat_carry_ms", 0)
        for name in (self._config.heat_resource, self._config.reputation_resource):
            if name in self.resources:
                self.resources[name] = self._clamped(name, self.resources[name])
