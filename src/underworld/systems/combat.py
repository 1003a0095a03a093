"""
Combat resolution.

One agent attacks another: attack power against defense power, each
randomised by a symmetric spread. The loser pays the winner a stake of
their own cash. Both stat deltas, the combat record and the cooldown
commit in one store transaction.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import asdict, dataclass
from datetime import datetime

from ..config import CombatPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import (
    ActionKind,
    ActivityEvent,
    Agent,
    CombatRecord,
    Family,
    InteractionType,
)
from ..state.store import WorldStore
from .cooldowns import CooldownLedger
from .energy import ResourceClock
from .errors import (
    AgentNotFound,
    HealthTooLow,
    InsufficientEnergy,
    InvalidTarget,
)
from .power import Power, calculate_total_power

logger = logging.getLogger(__name__)


def roll_combat(value: int, rng: random.Random, spread: float) -> float:
    """value * (1 + (U - 0.5) * 2 * spread), U ~ Uniform(0, 1)."""
    return value * (1 + (rng.random() - 0.5) * 2 * spread)


@dataclass
class CombatOutcome:
    """Everything that happened in one fight."""
    record: CombatRecord
    attacker_won: bool
    attacker_power: Power
    defender_power: Power
    attacker_roll: float
    defender_roll: float
    stake: int
    winner_respect: int
    loser_respect: int
    attacker_damage: int
    defender_damage: int
    energy_spent: int
    activity: ActivityEvent

    @property
    def winner_id(self) -> str:
        return self.record.winner_id

    def to_dict(self) -> dict:
        return {
            "victory": self.attacker_won,
            "winner_id": self.winner_id,
            "attacker_roll": round(self.attacker_roll),
            "defender_roll": round(self.defender_roll),
            "cash_stolen": self.stake,
            "winner_respect": self.winner_respect,
            "loser_respect": self.loser_respect,
            "attacker_damage": self.attacker_damage,
            "defender_damage": self.defender_damage,
            "energy_spent": self.energy_spent,
            "message": self.activity.result_text,
        }


@dataclass
class AttackTarget:
    """One candidate opponent, as listed for an attacker."""
    id: str
    name: str
    level: int
    family_name: str | None
    power: int
    estimated_loot: int
    profitability: float    # Loot per point of power

    def to_dict(self) -> dict:
        return asdict(self)


class CombatResolver:
    """
    Resolves agent-vs-agent fights.

    Rejections (self, same family, missing agent, cooldown, low health,
    low energy) are raised before any fight state is written.
    """

    def __init__(
        self,
        store: WorldStore,
        ledger: CooldownLedger,
        policy: CombatPolicy | None = None,
        clock: ResourceClock | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.policy = policy or CombatPolicy()
        self.clock = clock
        self.rng = rng or random.Random()

    def _family(self, agent: Agent) -> Family | None:
        if agent.family_id is None:
            return None
        return self.store.get_family(agent.family_id)

    def check(
        self,
        attacker_id: str,
        defender_id: str,
        now: datetime | None = None,
    ) -> tuple[Agent, Agent]:
        """
        Validate a fight without touching state.

        Returns (attacker, defender) snapshots.
        """
        now = now or datetime.now()

        if attacker_id == defender_id:
            raise InvalidTarget("Cannot attack yourself", target_id=defender_id)

        attacker = self.store.get_agent(attacker_id)
        if attacker is None:
            raise AgentNotFound(attacker_id)
        defender = self.store.get_agent(defender_id)
        if defender is None:
            raise AgentNotFound(defender_id)

        if attacker.family_id and attacker.family_id == defender.family_id:
            raise InvalidTarget("Cannot attack family members", target_id=defender_id)

        self.ledger.require(attacker_id, defender_id, InteractionType.ATTACK, now)

        if attacker.health < self.policy.min_attacker_health:
            raise HealthTooLow(self.policy.min_attacker_health, attacker.health)

        return attacker, defender

    def _stake(self, loser_cash: int) -> int:
        pct = self.rng.uniform(self.policy.stake_min_pct, self.policy.stake_max_pct)
        return min(math.floor(max(loser_cash, 0) * pct), self.policy.stake_cap)

    def targets(
        self,
        agent_id: str,
        now: datetime | None = None,
        limit: int = 50,
    ) -> list[AttackTarget]:
        """
        Opponents the agent may attack right now, best loot per power first.

        Skips family members and anyone on the agent's attack cooldown.
        Estimated loot is the stake at the middle of the stake range.
        Nothing is written and no randomness is drawn.
        """
        now = now or datetime.now()
        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)

        mid_pct = (self.policy.stake_min_pct + self.policy.stake_max_pct) / 2
        targets = []
        for other in self.store.list_agents():
            if other.id == agent.id:
                continue
            if agent.family_id and other.family_id == agent.family_id:
                continue
            if not self.ledger.can_interact(agent.id, other.id, InteractionType.ATTACK, now).allowed:
                continue

            family = self._family(other)
            power = calculate_total_power(other, family).total
            loot = min(math.floor(max(other.cash, 0) * mid_pct), self.policy.stake_cap)
            targets.append(AttackTarget(
                id=other.id,
                name=other.name,
                level=other.level,
                family_name=family.name if family else None,
                power=power,
                estimated_loot=loot,
                profitability=round(loot / power, 2) if power > 0 else float(loot),
            ))
            if len(targets) >= limit:
                break

        targets.sort(key=lambda t: t.profitability, reverse=True)
        return targets

    def attack(
        self,
        attacker_id: str,
        defender_id: str,
        now: datetime | None = None,
    ) -> CombatOutcome:
        """
        Resolve one fight and commit it atomically.

        Raises an ActionRejected subclass if the fight cannot happen.
        """
        now = now or datetime.now()
        attacker, defender = self.check(attacker_id, defender_id, now)

        energy = attacker.energy
        if self.clock is not None:
            energy = self.clock.regenerate(attacker, now)
        cost = self.policy.energy_cost
        if energy < cost:
            raise InsufficientEnergy(cost, energy)

        attacker_power = calculate_total_power(attacker, self._family(attacker))
        defender_power = calculate_total_power(defender, self._family(defender))

        attacker_roll = roll_combat(attacker_power.attack, self.rng, self.policy.randomness)
        defender_roll = roll_combat(defender_power.defense, self.rng, self.policy.randomness)
        attacker_won = attacker_roll > defender_roll

        winner, loser = (attacker, defender) if attacker_won else (defender, attacker)
        stake = self._stake(loser.cash)
        winner_respect = self.policy.respect_win
        if self.policy.respect_level_bonus:
            winner_respect += loser.level // 2
        loser_respect = -self.policy.respect_loss
        winner_damage = self.rng.randint(0, self.policy.winner_damage_max)
        loser_damage = self.rng.randint(self.policy.loser_damage_min, self.policy.loser_damage_max)

        winner_delta = {"cash": stake, "respect": winner_respect, "health": -winner_damage}
        loser_delta = {"cash": -stake, "respect": loser_respect, "health": -loser_damage}
        attacker_delta = winner_delta if attacker_won else loser_delta
        defender_delta = loser_delta if attacker_won else winner_delta
        attacker_delta = {**attacker_delta, "energy": -cost}

        record = CombatRecord(
            attacker_id=attacker.id,
            defender_id=defender.id,
            attacker_power=round(attacker_roll),
            defender_power=round(defender_roll),
            winner_id=winner.id,
            cash_stolen=stake,
            respect_change=winner_respect,
            attacker_damage=winner_damage if attacker_won else loser_damage,
            defender_damage=loser_damage if attacker_won else winner_damage,
            created_at=now,
        )

        with self.store.transaction():
            self.store.increment(attacker.id, **attacker_delta)
            self.store.increment(defender.id, **defender_delta)
            self.store.update(attacker.id, last_active=now)
            self.store.add_combat(record)
            self.ledger.set_cooldown(attacker.id, defender.id, InteractionType.ATTACK, now=now)

        if attacker_won:
            activity = ActivityEvent(
                agent_display_name=attacker.name,
                action_kind=ActionKind.FIGHT,
                result_text=f"Defeated {defender.name}!",
                rewards={"cash": f"+${stake:,}", "respect": f"+{winner_respect}"},
                created_at=now,
            )
        else:
            activity = ActivityEvent(
                agent_display_name=attacker.name,
                action_kind=ActionKind.FIGHT,
                result_text=f"Lost to {defender.name}",
                rewards={"cash": f"-${stake:,}", "respect": f"{loser_respect}"},
                created_at=now,
            )

        get_event_bus().emit(
            EventType.COMBAT_RESOLVED,
            agent_id=attacker.id,
            combat_id=record.id,
            defender_id=defender.id,
            winner_id=winner.id,
            cash_stolen=stake,
        )
        publish_activity(activity, agent_id=attacker.id)
        logger.debug(
            f"Combat {record.id}: {attacker.id} ({attacker_roll:.1f}) vs "
            f"{defender.id} ({defender_roll:.1f}) -> {winner.id}"
        )

        return CombatOutcome(
            record=record,
            attacker_won=attacker_won,
            attacker_power=attacker_power,
            defender_power=defender_power,
            attacker_roll=attacker_roll,
            defender_roll=defender_roll,
            stake=stake,
            winner_respect=winner_respect,
            loser_respect=loser_respect,
            attacker_damage=record.attacker_damage,
            defender_damage=record.defender_damage,
            energy_spent=cost,
            activity=activity,
        )
