"""
Town building interactions.

Small idle actions an agent performs when it wanders into a building.
Each (agent, building) pair is rate-limited by a short building cooldown.
Interactions never touch ``last_active``; only the scheduler's main loop
and direct actions count as activity.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime

from ..config import BuildingPolicy, LevelPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import ActionKind, ActivityEvent, Agent, CombatRecord, InteractionType
from ..state.store import WorldStore
from .cooldowns import CooldownLedger
from .energy import ResourceClock
from .errors import AgentNotFound
from .income import IncomeAccrual
from .leveling import apply_experience

logger = logging.getLogger(__name__)


def building_key(name: str) -> str:
    """'The Vault' -> 'vault', 'Family HQ' -> 'family_hq'"""
    key = name.strip().lower().replace("-", " ").replace(" ", "_")
    if key.startswith("the_"):
        key = key[4:]
    return key


@dataclass
class BuildingOutcome:
    """What happened inside a building."""
    building: str
    action_kind: ActionKind
    result_text: str
    rewards: dict[str, str] = field(default_factory=dict)
    activity: ActivityEvent | None = None


class BuildingSystem:
    """
    Dispatches a building visit to its handler.

    Unknown buildings are a plain visit. The cooldown is set after every
    interaction, including plain visits.
    """

    def __init__(
        self,
        store: WorldStore,
        ledger: CooldownLedger,
        policy: BuildingPolicy | None = None,
        clock: ResourceClock | None = None,
        income: IncomeAccrual | None = None,
        rng: random.Random | None = None,
        leveling: LevelPolicy | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.policy = policy or BuildingPolicy()
        self.clock = clock
        self.income = income
        self.rng = rng or random.Random()
        self.leveling = leveling or LevelPolicy()

        self._handlers = {
            "family_hq": self._family_hq,
            "vault": self._vault,
            "back_alleys": self._back_alleys,
            "casino": self._casino,
            "fight_club": self._fight_club,
            "black_market": self._black_market,
            "properties": self._properties,
        }

    @property
    def buildings(self) -> list[str]:
        return list(self._handlers)

    def interact(
        self,
        agent_id: str,
        building: str,
        now: datetime | None = None,
    ) -> BuildingOutcome:
        """
        Run one building interaction.

        Raises:
            AgentNotFound, CooldownActive
        """
        now = now or datetime.now()
        key = building_key(building)

        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)

        self.ledger.require(agent.id, key, InteractionType.BUILDING, now)

        if self.clock is not None:
            agent.energy = self.clock.regenerate(agent, now)

        handler = self._handlers.get(key, self._visit)
        outcome = handler(agent, now)
        outcome.building = key

        self.ledger.set_cooldown(agent.id, key, InteractionType.BUILDING, now=now)

        outcome.activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=outcome.action_kind,
            result_text=outcome.result_text,
            rewards=outcome.rewards,
            created_at=now,
        )
        get_event_bus().emit(
            EventType.BUILDING_VISITED,
            agent_id=agent.id,
            building=key,
            action=outcome.action_kind.value,
        )
        publish_activity(outcome.activity, agent_id=agent.id)
        return outcome

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _visit(self, agent: Agent, now: datetime) -> BuildingOutcome:
        return BuildingOutcome("", ActionKind.VISIT, "Just passing through")

    def _family_hq(self, agent: Agent, now: datetime) -> BuildingOutcome:
        if not agent.family_id:
            return BuildingOutcome("", ActionKind.VISIT, "No family to check in with")

        gain = min(self.policy.heal_amount, agent.max_health - agent.health)
        rewards = {}
        if gain > 0:
            self.store.increment(agent.id, health=gain)
            rewards["health"] = f"+{gain}"
        return BuildingOutcome("", ActionKind.HEAL, "Rested at Family HQ", rewards)

    def _vault(self, agent: Agent, now: datetime) -> BuildingOutcome:
        deposit = math.floor(max(agent.cash, 0) * self.policy.vault_deposit_ratio)
        if deposit <= self.policy.vault_min_deposit:
            return BuildingOutcome("", ActionKind.VISIT, "Not enough cash to deposit")

        interest = math.floor(deposit * self.policy.vault_interest)
        self.store.increment(agent.id, cash=interest)
        return BuildingOutcome(
            "", ActionKind.DEPOSIT, "Earned vault interest", {"cash": f"+${interest:,}"}
        )

    def _back_alleys(self, agent: Agent, now: datetime) -> BuildingOutcome:
        cost = self.policy.hustle_energy
        if agent.energy < cost:
            return BuildingOutcome("", ActionKind.VISIT, "Too tired to hustle")

        cash = self.rng.randint(self.policy.hustle_cash_min, self.policy.hustle_cash_max)
        exp = self.rng.randint(self.policy.hustle_exp_min, self.policy.hustle_exp_max)
        new_level, energy_growth = apply_experience(agent.level, agent.experience, exp, self.leveling)

        with self.store.transaction():
            self.store.increment(
                agent.id, energy=-cost, cash=cash, experience=exp, max_energy=energy_growth
            )
            self.store.update(agent.id, level=new_level)

        return BuildingOutcome(
            "",
            ActionKind.HUSTLE,
            "Did some shady work",
            {"cash": f"+${cash:,}", "exp": f"+{exp}"},
        )

    def _casino(self, agent: Agent, now: datetime) -> BuildingOutcome:
        if agent.cash < self.policy.casino_min_cash:
            return BuildingOutcome("", ActionKind.VISIT, "Not enough to gamble")

        bet = min(self.policy.casino_max_bet, math.floor(agent.cash * self.policy.casino_bet_ratio))
        won = self.rng.random() < self.policy.casino_win_chance
        self.store.increment(agent.id, cash=bet if won else -bet)

        if won:
            return BuildingOutcome("", ActionKind.GAMBLE, "Won at the tables!", {"cash": f"+${bet:,}"})
        return BuildingOutcome("", ActionKind.GAMBLE, "Lost the bet", {"cash": f"-${bet:,}"})

    def _fight_club_opponents(self, agent: Agent) -> list[Agent]:
        """Healthy outsiders, most recently active first."""
        pool = [
            other for other in self.store.list_agents()
            if other.id != agent.id
            and other.health > self.policy.fight_club_min_health
            and not (agent.family_id and other.family_id == agent.family_id)
        ]
        pool.sort(key=lambda a: a.last_active or datetime.min, reverse=True)
        return pool[:self.policy.fight_club_pool]

    def _fight_club(self, agent: Agent, now: datetime) -> BuildingOutcome:
        """
        Bare-knuckle bout against a random regular.

        Base stats only, no gear or family bonus. A winning visitor takes a
        small cut of the opponent's cash; a losing one only loses respect.
        Both agents' deltas and the combat record commit in one transaction.
        """
        if agent.health < self.policy.fight_club_min_health:
            return BuildingOutcome("", ActionKind.VISIT, "Too injured to fight")

        opponents = self._fight_club_opponents(agent)
        if not opponents:
            return BuildingOutcome("", ActionKind.VISIT, "No opponents available")

        p = self.policy
        opponent = self.rng.choice(opponents)
        attack_roll = agent.base_attack + self.rng.uniform(0, p.fight_club_roll_bonus)
        defense_roll = opponent.base_defense + self.rng.uniform(0, p.fight_club_roll_bonus)
        won = attack_roll > defense_roll

        if won:
            stolen = math.floor(max(opponent.cash, 0) * p.fight_club_steal_pct)
            respect = p.fight_club_respect_win
            agent_damage = p.fight_club_winner_damage
            opponent_damage = self.rng.randint(p.fight_club_win_damage_min, p.fight_club_win_damage_max)
        else:
            stolen = 0
            respect = -p.fight_club_respect_loss
            agent_damage = self.rng.randint(p.fight_club_loss_damage_min, p.fight_club_loss_damage_max)
            opponent_damage = p.fight_club_winner_damage

        record = CombatRecord(
            attacker_id=agent.id,
            defender_id=opponent.id,
            attacker_power=round(attack_roll),
            defender_power=round(defense_roll),
            winner_id=agent.id if won else opponent.id,
            cash_stolen=stolen,
            respect_change=respect if won else 0,
            attacker_damage=agent_damage,
            defender_damage=opponent_damage,
            created_at=now,
        )

        with self.store.transaction():
            self.store.increment(agent.id, cash=stolen, respect=respect, health=-agent_damage)
            self.store.increment(opponent.id, cash=-stolen, health=-opponent_damage)
            self.store.add_combat(record)

        get_event_bus().emit(
            EventType.COMBAT_RESOLVED,
            agent_id=agent.id,
            combat_id=record.id,
            defender_id=opponent.id,
            winner_id=record.winner_id,
            cash_stolen=stolen,
        )

        if won:
            return BuildingOutcome(
                "",
                ActionKind.FIGHT,
                f"Beat {opponent.name} at Fight Club!",
                {"cash": f"+${stolen:,}", "respect": f"+{respect}"},
            )
        return BuildingOutcome("", ActionKind.FIGHT, f"Lost to {opponent.name}", {"respect": str(respect)})

    def _black_market(self, agent: Agent, now: datetime) -> BuildingOutcome:
        p = self.policy
        if agent.energy < p.black_market_energy:
            return BuildingOutcome("", ActionKind.VISIT, "Too tired to browse")
        if agent.cash < p.black_market_min_cash:
            return BuildingOutcome("", ActionKind.VISIT, "Need more cash")

        if self.rng.random() >= p.black_market_deal_chance:
            self.store.increment(agent.id, energy=-p.black_market_energy, cash=-p.black_market_loss)
            return BuildingOutcome(
                "", ActionKind.TRADE, "Nothing interesting today", {"cash": f"-${p.black_market_loss:,}"}
            )

        # Resale value minus the price paid; can still be a loss
        net = self.rng.randint(p.black_market_bonus_min, p.black_market_bonus_max) - p.black_market_price
        exp = p.black_market_exp
        new_level, energy_growth = apply_experience(agent.level, agent.experience, exp, self.leveling)

        with self.store.transaction():
            self.store.increment(
                agent.id,
                energy=-p.black_market_energy,
                cash=net,
                experience=exp,
                max_energy=energy_growth,
            )
            self.store.update(agent.id, level=new_level)

        cash_text = f"+${net:,}" if net >= 0 else f"-${-net:,}"
        return BuildingOutcome(
            "", ActionKind.TRADE, "Found a good deal!", {"cash": cash_text, "exp": f"+{exp}"}
        )

    def _properties(self, agent: Agent, now: datetime) -> BuildingOutcome:
        if not agent.properties:
            return BuildingOutcome("", ActionKind.VISIT, "No properties owned")
        if self.income is None:
            return BuildingOutcome("", ActionKind.VISIT, "Nobody at the rent office")

        report = self.income.collect(agent.id, now)
        if not report.collected:
            return BuildingOutcome("", ActionKind.VISIT, "No rent due yet")
        return BuildingOutcome(
            "",
            ActionKind.COLLECT,
            f"Collected rent from {len(report.by_property)} properties",
            {"cash": f"+${report.total:,}"},
        )
