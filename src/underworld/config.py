"""
Game rules and catalog configuration.

One authoritative, versioned table of every tunable the resolvers use.
Resolvers receive their policy object; nothing is hard-coded per call site.
Rules can be overridden from a YAML file, missing keys keep their defaults.
"""

import re
from datetime import timedelta
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from .state.schema import (
    EquipmentTemplate,
    InteractionType,
    JobTemplate,
    PropertyTemplate,
)


# -----------------------------------------------------------------------------
# Policies
# -----------------------------------------------------------------------------

class RegenPolicy(BaseModel):
    """Energy catch-up regeneration."""
    interval_seconds: int = Field(default=300, gt=0)  # One tick every 5 minutes
    rate: int = Field(default=1, gt=0)                # Energy per tick

    @property
    def interval(self) -> timedelta:
        return timedelta(seconds=self.interval_seconds)


class CooldownPolicy(BaseModel):
    """One canonical duration per interaction type."""
    attack_seconds: int = Field(default=15 * 60, gt=0)
    building_seconds: int = Field(default=8, gt=0)

    def duration_for(self, type: InteractionType) -> timedelta:
        seconds = {
            InteractionType.ATTACK: self.attack_seconds,
            InteractionType.BUILDING: self.building_seconds,
        }[type]
        return timedelta(seconds=seconds)


class CombatPolicy(BaseModel):
    """Fight resolution and the loser-pays stake policy."""
    randomness: float = Field(default=0.10, ge=0.0, lt=1.0)  # +/- spread on each roll
    energy_cost: int = Field(default=10, ge=0)
    min_attacker_health: int = 20

    stake_min_pct: float = 0.05
    stake_max_pct: float = 0.15
    stake_cap: int = 10_000

    respect_win: int = 5
    respect_level_bonus: bool = True  # Winner also gains floor(loser_level / 2)
    respect_loss: int = 3

    winner_damage_max: int = 10
    loser_damage_min: int = 10
    loser_damage_max: int = 30


class LevelPolicy(BaseModel):
    """Growth applied whenever experience raises an agent's level."""
    max_energy_per_level: int = Field(default=5, ge=0)


class JobPolicy(BaseModel):
    bonus_per_level: float = 0.01
    success_cap: float = Field(default=0.95, ge=0.0, le=1.0)
    failure_exp_ratio: float = 0.25


class IncomePolicy(BaseModel):
    period_seconds: int = Field(default=3600, gt=0)

    @property
    def period(self) -> timedelta:
        return timedelta(seconds=self.period_seconds)


class SchedulerPolicy(BaseModel):
    """Autonomous tick batch selection and matchmaking."""
    idle_seconds: int = Field(default=120, ge=0)
    batch_size: int = Field(default=25, gt=0)
    low_energy: int = 15
    low_health: int = 30
    matchmaking_level_range: int = 3
    matchmaking_min_health: int = 20
    matchmaking_pool: int = 10

    @property
    def idle_threshold(self) -> timedelta:
        return timedelta(seconds=self.idle_seconds)


class FamilyPolicy(BaseModel):
    max_members: int = 10
    attack_bonus: int = 5
    defense_bonus: int = 5
    name_min_length: int = 3
    name_max_length: int = 30


class MarketPolicy(BaseModel):
    equip_limit: int = 3


class BuildingPolicy(BaseModel):
    heal_amount: int = 10

    vault_deposit_ratio: float = 0.1
    vault_min_deposit: int = 100
    vault_interest: float = 0.02

    hustle_energy: int = 3
    hustle_cash_min: int = 50
    hustle_cash_max: int = 249
    hustle_exp_min: int = 5
    hustle_exp_max: int = 9

    casino_min_cash: int = 100
    casino_bet_ratio: float = 0.1
    casino_max_bet: int = 1000
    casino_win_chance: float = 0.45

    # Fight Club: base stats plus a flat random bonus, no stake policy
    fight_club_min_health: int = 20
    fight_club_pool: int = 10
    fight_club_roll_bonus: int = 20
    fight_club_steal_pct: float = 0.05
    fight_club_respect_win: int = 3
    fight_club_respect_loss: int = 1
    fight_club_winner_damage: int = 5
    fight_club_win_damage_min: int = 5      # Opponent damage when the visitor wins
    fight_club_win_damage_max: int = 14
    fight_club_loss_damage_min: int = 10    # Visitor damage when the visitor loses
    fight_club_loss_damage_max: int = 24

    black_market_energy: int = 5
    black_market_min_cash: int = 500
    black_market_price: int = 500
    black_market_deal_chance: float = 0.3
    black_market_bonus_min: int = 100
    black_market_bonus_max: int = 599
    black_market_exp: int = 10
    black_market_loss: int = 200


class GameRules(BaseModel):
    """All policies in one versioned object."""
    version: str = "1"
    regen: RegenPolicy = Field(default_factory=RegenPolicy)
    cooldowns: CooldownPolicy = Field(default_factory=CooldownPolicy)
    combat: CombatPolicy = Field(default_factory=CombatPolicy)
    leveling: LevelPolicy = Field(default_factory=LevelPolicy)
    jobs: JobPolicy = Field(default_factory=JobPolicy)
    income: IncomePolicy = Field(default_factory=IncomePolicy)
    scheduler: SchedulerPolicy = Field(default_factory=SchedulerPolicy)
    families: FamilyPolicy = Field(default_factory=FamilyPolicy)
    market: MarketPolicy = Field(default_factory=MarketPolicy)
    buildings: BuildingPolicy = Field(default_factory=BuildingPolicy)


def load_rules(path: Path | str | None = None) -> GameRules:
    """
    Load rules from a YAML file, or return defaults if path is None.

    Raises FileNotFoundError for a missing file and pydantic's
    ValidationError for bad values.
    """
    if path is None:
        return GameRules()

    with open(Path(path), "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return GameRules.model_validate(data)


def save_rules(rules: GameRules, path: Path | str) -> Path:
    """Write rules as YAML. Returns the file path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(rules.model_dump(), f, default_flow_style=False, sort_keys=False)
    return path


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------

def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class Catalog(BaseModel):
    """Read-only tables of jobs, equipment and properties."""
    jobs: list[JobTemplate] = Field(default_factory=list)
    equipment: list[EquipmentTemplate] = Field(default_factory=list)
    properties: list[PropertyTemplate] = Field(default_factory=list)

    def get_job(self, key: str) -> JobTemplate | None:
        """Find a job by id or by name (case-insensitive)."""
        for job in self.jobs:
            if job.id == key or job.name.lower() == key.lower():
                return job
        return None

    def get_equipment(self, name: str) -> EquipmentTemplate | None:
        for item in self.equipment:
            if item.name.lower() == name.lower():
                return item
        return None

    def get_property(self, name: str) -> PropertyTemplate | None:
        for prop in self.properties:
            if prop.name.lower() == name.lower():
                return prop
        return None


# (name, category, energy, level, cash_min, cash_max, respect, exp, success)
_JOB_TABLE = [
    ("Collect Protection Money", "Street", 5, 1, 100, 300, 1, 10, 0.9),
    ("Run Numbers", "Street", 5, 1, 150, 350, 1, 12, 0.85),
    ("Steal Car Parts", "Street", 8, 2, 200, 500, 2, 15, 0.8),
    ("Shakedown Street Vendors", "Street", 8, 2, 250, 600, 2, 18, 0.75),
    ("Deliver Package", "Street", 6, 3, 300, 700, 2, 20, 0.85),
    ("Run Illegal Poker Game", "Street", 10, 4, 400, 1000, 3, 25, 0.7),
    ("Hijack Delivery Truck", "Street", 12, 5, 600, 1500, 4, 30, 0.65),
    ("Counterfeit Goods Sales", "Street", 10, 5, 500, 1200, 3, 28, 0.75),
    ("Oversee Drug Corner", "Organized", 15, 6, 1000, 2500, 5, 40, 0.7),
    ("Collect Gambling Debts", "Organized", 15, 7, 1200, 3000, 6, 45, 0.65),
    ("Run Underground Casino", "Organized", 18, 8, 1500, 4000, 7, 50, 0.6),
    ("Extort Local Business", "Organized", 20, 9, 2000, 5000, 8, 55, 0.55),
    ("Smuggle Contraband", "Organized", 20, 10, 2500, 6000, 10, 60, 0.5),
    ("Fix Local Election", "Organized", 25, 11, 3000, 8000, 12, 70, 0.45),
    ("Corrupt Union Official", "Organized", 25, 12, 4000, 10000, 15, 80, 0.4),
    ("Launder Money", "Organized", 22, 12, 3500, 9000, 12, 75, 0.5),
    ("Bribe Police Captain", "Organized", 28, 13, 5000, 12000, 18, 90, 0.35),
    ("Rob Armored Truck", "HighStakes", 35, 15, 10000, 30000, 25, 120, 0.35),
    ("Kidnap for Ransom", "HighStakes", 40, 16, 15000, 40000, 30, 140, 0.3),
    ("Hit Rival Boss", "HighStakes", 45, 18, 20000, 50000, 40, 160, 0.25),
    ("Raid Federal Evidence", "HighStakes", 50, 20, 25000, 60000, 50, 180, 0.2),
    ("Insider Trading Ring", "HighStakes", 45, 22, 30000, 80000, 45, 200, 0.25),
    ("Art Museum Heist", "HighStakes", 55, 24, 40000, 100000, 60, 250, 0.15),
    ("Casino Vault Job", "HighStakes", 60, 26, 50000, 150000, 80, 300, 0.1),
    ("Take Over Crime Family", "HighStakes", 70, 30, 100000, 300000, 150, 500, 0.08),
]

_EQUIPMENT_TABLE = [
    EquipmentTemplate(name="Brass Knuckles", category="Weapon", attack_bonus=5, price=500),
    EquipmentTemplate(name="Switchblade", category="Weapon", attack_bonus=8, job_bonus=0.02, price=1000),
    EquipmentTemplate(name="Revolver", category="Weapon", rarity="Rare", attack_bonus=20, job_bonus=0.05, price=5000),
    EquipmentTemplate(name="Tommy Gun", category="Weapon", rarity="Legendary", attack_bonus=50, job_bonus=0.1, price=50000),
    EquipmentTemplate(name="Leather Jacket", category="Armor", defense_bonus=5, price=800),
    EquipmentTemplate(name="Kevlar Vest", category="Armor", rarity="Rare", defense_bonus=20, price=8000),
    EquipmentTemplate(name="Motorcycle", category="Vehicle", attack_bonus=3, defense_bonus=3, job_bonus=0.05, price=3000),
    EquipmentTemplate(name="Sports Car", category="Vehicle", rarity="Rare", attack_bonus=10, defense_bonus=10, job_bonus=0.12, price=25000),
]

_PROPERTY_TABLE = [
    PropertyTemplate(name="Corner Bodega", category="Legitimate", city="New York", purchase_price=5000, income_per_hour=50),
    PropertyTemplate(name="Laundromat", category="Legitimate", city="New York", purchase_price=8000, income_per_hour=80),
    PropertyTemplate(name="Parking Lot", category="Legitimate", city="New York", purchase_price=15000, income_per_hour=150),
    PropertyTemplate(name="Nightclub", category="Underground", city="Miami", purchase_price=50000, income_per_hour=500, heat_level=3),
    PropertyTemplate(name="Warehouse", category="Underground", city="Chicago", purchase_price=100000, income_per_hour=1000, heat_level=4),
    PropertyTemplate(name="Casino", category="Major", city="Las Vegas", purchase_price=500000, income_per_hour=5000, heat_level=5),
    PropertyTemplate(name="Movie Studio", category="Major", city="Los Angeles", purchase_price=1000000, income_per_hour=10000, heat_level=3),
]


def default_catalog() -> Catalog:
    """The built-in catalog."""
    jobs = [
        JobTemplate(
            id=slugify(name),
            name=name,
            category=category,
            energy_cost=energy,
            level_required=level,
            cash_min=cash_min,
            cash_max=cash_max,
            respect_reward=respect,
            exp_reward=exp,
            base_success_rate=rate,
        )
        for name, category, energy, level, cash_min, cash_max, respect, exp, rate in _JOB_TABLE
    ]
    return Catalog(
        jobs=jobs,
        equipment=list(_EQUIPMENT_TABLE),
        properties=list(_PROPERTY_TABLE),
    )
