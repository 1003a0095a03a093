"""
Game systems for the underworld.

Each system works on store snapshots and writes back through relative
increments. Leaves first: power, leveling, energy and cooldowns are used
by the resolvers above them.
"""

from .errors import (
    ActionRejected,
    AgentNotFound,
    AlreadyInFamily,
    CooldownActive,
    FamilyFull,
    HealthTooLow,
    InsufficientCash,
    InsufficientEnergy,
    InvalidTarget,
    LevelTooLow,
    UnknownCatalogEntry,
)
from .power import Power, calculate_total_power
from .leveling import apply_experience, level_for_experience, experience_for_level, level_progress
from .energy import ResourceClock, RegenResult, compute_regen
from .cooldowns import CooldownLedger, CooldownStatus
from .combat import AttackTarget, CombatResolver, CombatOutcome, roll_combat
from .jobs import JobResolver, JobOutcome, calculate_success_rate
from .income import IncomeAccrual, IncomeReport, accrue_property
from .families import FamilySystem
from .market import MarketSystem
from .buildings import BuildingSystem, BuildingOutcome
from .views import AgentStatus, describe_agent

__all__ = [
    # Rejections
    "ActionRejected",
    "AgentNotFound",
    "AlreadyInFamily",
    "CooldownActive",
    "FamilyFull",
    "HealthTooLow",
    "InsufficientCash",
    "InsufficientEnergy",
    "InvalidTarget",
    "LevelTooLow",
    "UnknownCatalogEntry",
    # Leaves
    "Power",
    "calculate_total_power",
    "apply_experience",
    "level_for_experience",
    "experience_for_level",
    "level_progress",
    "ResourceClock",
    "RegenResult",
    "compute_regen",
    "CooldownLedger",
    "CooldownStatus",
    # Resolvers
    "CombatResolver",
    "CombatOutcome",
    "AttackTarget",
    "roll_combat",
    "JobResolver",
    "JobOutcome",
    "calculate_success_rate",
    "IncomeAccrual",
    "IncomeReport",
    "accrue_property",
    # Supplementary systems
    "FamilySystem",
    "MarketSystem",
    "BuildingSystem",
    "BuildingOutcome",
    # Read models
    "AgentStatus",
    "describe_agent",
]
