"""
Pydantic models for underworld game state.

Structured like database tables: each model maps to one row type the
storage layer keeps. Catalog templates and history records are frozen.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class InteractionType(str, Enum):
    """Kinds of rate-limited interaction tracked by the cooldown ledger."""
    ATTACK = "attack"          # Agent vs agent fight
    BUILDING = "building"      # Idle interaction with a town building


class ActionKind(str, Enum):
    """What an agent did, as shown in the activity feed."""
    WORK = "work"
    FIGHT = "fight"
    REST = "rest"
    JOIN_FAMILY = "join_family"
    LEAVE_FAMILY = "leave_family"
    CREATE_FAMILY = "create_family"
    COLLECT = "collect"
    PURCHASE = "purchase"
    HEAL = "heal"
    DEPOSIT = "deposit"
    HUSTLE = "hustle"
    GAMBLE = "gamble"
    TRADE = "trade"
    VISIT = "visit"


# -----------------------------------------------------------------------------
# Owned items
# -----------------------------------------------------------------------------

def generate_id() -> str:
    return str(uuid4())[:8]


class Equipment(BaseModel):
    """Gear owned by one agent. Only equipped items add power."""
    id: str = Field(default_factory=generate_id)
    name: str
    category: str = "Weapon"      # Weapon, Armor, Vehicle
    rarity: str = "Common"
    attack_bonus: int = 0
    defense_bonus: int = 0
    job_bonus: float = 0.0        # Added to job success rate while equipped
    equipped: bool = False


class CrewMember(BaseModel):
    """Hired muscle. Crew always contributes, there is no equip toggle."""
    id: str = Field(default_factory=generate_id)
    name: str
    attack_bonus: int = 0
    defense_bonus: int = 0


class Property(BaseModel):
    """Income-producing asset owned by one agent."""
    id: str = Field(default_factory=generate_id)
    name: str
    category: str = "Legitimate"
    city: str = ""
    purchase_price: int = 0
    income_per_hour: int = 0
    last_income_at: datetime = Field(default_factory=datetime.now)


# -----------------------------------------------------------------------------
# Core models
# -----------------------------------------------------------------------------

class Family(BaseModel):
    """
    A crime family. Its bonuses apply to every member's power.

    Membership lives on the agent (``Agent.family_id``); respect is an
    aggregate recomputed from members, treasury is stored here.
    """
    id: str = Field(default_factory=generate_id)
    name: str
    boss_id: str | None = None
    description: str = ""
    attack_bonus: int = 5
    defense_bonus: int = 5
    treasury: int = 0
    created_at: datetime = Field(default_factory=datetime.now)


class Agent(BaseModel):
    """
    A persistent, externally controlled character.

    0 <= energy <= max_energy and 1 <= health <= max_health are checked
    on construction and kept by the store. Cash is an unbounded integer.
    """
    id: str = Field(default_factory=generate_id)
    username: str
    display_name: str = ""
    persona: str = "default"      # Key into the scheduler's persona table

    level: int = 1
    experience: int = 0
    cash: int = 1000
    respect: int = 0

    energy: int = Field(default=100, ge=0)
    max_energy: int = Field(default=100, ge=1)
    health: int = Field(default=100, ge=1)
    max_health: int = Field(default=100, ge=1)

    base_attack: int = 10
    base_defense: int = 10

    family_id: str | None = None
    family_joined_at: datetime | None = None

    energy_regen_at: datetime = Field(default_factory=datetime.now)  # Regen anchor
    last_active: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    equipment: list[Equipment] = Field(default_factory=list)
    crew: list[CrewMember] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_pools(self) -> "Agent":
        if self.energy > self.max_energy:
            raise ValueError(f"energy {self.energy} exceeds max_energy {self.max_energy}")
        if self.health > self.max_health:
            raise ValueError(f"health {self.health} exceeds max_health {self.max_health}")
        return self

    @property
    def name(self) -> str:
        """Name shown in the activity feed."""
        return self.display_name or self.username

    @property
    def equipped(self) -> list[Equipment]:
        return [e for e in self.equipment if e.equipped]


class Cooldown(BaseModel):
    """Suppression of one (agent, target, type) interaction until expires_at."""
    agent_id: str
    target_id: str
    type: InteractionType
    expires_at: datetime

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.agent_id, self.target_id, self.type.value)


# -----------------------------------------------------------------------------
# Static catalog
# -----------------------------------------------------------------------------

class JobTemplate(BaseModel):
    """A probabilistic job agents can attempt."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str = "Street"      # Street, Organized, HighStakes
    energy_cost: int
    level_required: int = 1
    cash_min: int
    cash_max: int
    respect_reward: int = 0
    exp_reward: int = 0
    base_success_rate: float = Field(ge=0.0, le=1.0)


class EquipmentTemplate(BaseModel):
    """Marketplace listing for a piece of equipment."""
    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    rarity: str = "Common"
    attack_bonus: int = 0
    defense_bonus: int = 0
    job_bonus: float = 0.0
    price: int


class PropertyTemplate(BaseModel):
    """Marketplace listing for an income property."""
    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    city: str
    purchase_price: int
    income_per_hour: int
    heat_level: int = 1


# -----------------------------------------------------------------------------
# Append-only history
# -----------------------------------------------------------------------------

class CombatRecord(BaseModel):
    """One resolved fight. Written once, never updated."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    attacker_id: str
    defender_id: str
    attacker_power: int           # Rounded attack roll
    defender_power: int           # Rounded defense roll
    winner_id: str
    cash_stolen: int = 0
    respect_change: int = 0       # Winner's respect gain
    attacker_damage: int = 0
    defender_damage: int = 0
    created_at: datetime = Field(default_factory=datetime.now)


class JobHistoryRecord(BaseModel):
    """One job attempt. Written once, never updated."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    agent_id: str
    job_id: str
    success: bool
    success_rate: float
    cash_earned: int = 0
    respect_earned: int = 0
    exp_earned: int = 0
    leveled_up: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class ActivityEvent(BaseModel):
    """
    Feed entry for one resolved action.

    This is the whole contract with any activity-feed consumer.
    """
    model_config = ConfigDict(frozen=True)

    agent_display_name: str
    action_kind: ActionKind
    result_text: str
    rewards: dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    def __str__(self) -> str:
        line = f"{self.agent_display_name}: {self.result_text}"
        if self.rewards:
            line += " (" + ", ".join(f"{k}: {v}" for k, v in self.rewards.items()) + ")"
        return line


class WorldSnapshot(BaseModel):
    """Everything a store holds, for JSON persistence."""
    schema_version: str = "1.0.0"
    agents: list[Agent] = Field(default_factory=list)
    families: list[Family] = Field(default_factory=list)
    cooldowns: list[Cooldown] = Field(default_factory=list)
    combats: list[CombatRecord] = Field(default_factory=list)
    job_history: list[JobHistoryRecord] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=datetime.now)
