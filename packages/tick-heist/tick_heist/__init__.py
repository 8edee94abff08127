"""Run lifecycle and outcome resolution for an idle crime game."""
from tick_heist.config import EngineConfig
from tick_heist.content import (
    Activity,
    Branch,
    ContentRegistry,
    ResourceDef,
    Variant,
    load_content,
)
from tick_heist.crew import CrewMember, CrewRoster, Role, StarTier
from tick_heist.driver import Ticker
from tick_heist.engine import Engine
from tick_heist.ledger import ResourceLedger, Shortfall
from tick_heist.log import GameLog, LogEntry
from tick_heist.requirements import Requirements, StaffRequirement, auto_assign, validate
from tick_heist.resolution import (
    AppliedOutcome,
    Deterministic,
    Jail,
    ModifierEffects,
    NoResolution,
    Outcome,
    RangedOutputs,
    WeightedOutcomes,
)
from tick_heist.run import Run
from tick_heist.scheduler import RunScheduler
from tick_heist.state import EngineState
from tick_heist.types import (
    Bundle,
    ContentError,
    CrewStatus,
    Failure,
    Range,
    Result,
    SnapshotError,
)

__all__ = [
    "Activity",
    "AppliedOutcome",
    "Branch",
    "Bundle",
    "ContentError",
    "ContentRegistry",
    "CrewMember",
    "CrewRoster",
    "CrewStatus",
    "Deterministic",
    "Engine",
    "EngineConfig",
    "EngineState",
    "Failure",
    "GameLog",
    "Jail",
    "LogEntry",
    "ModifierEffects",
    "NoResolution",
    "Outcome",
    "Range",
    "RangedOutputs",
    "Requirements",
    "ResourceDef",
    "ResourceLedger",
    "Result",
    "Role",
    "Run",
    "RunScheduler",
    "Shortfall",
    "SnapshotError",
    "StaffRequirement",
    "StarTier",
    "Ticker",
    "Variant",
    "WeightedOutcomes",
    "auto_assign",
    "load_content",
    "validate",
]
