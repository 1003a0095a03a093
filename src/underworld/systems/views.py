"""
Derived read-models.

Everything here is recomputed from stored state on demand and never
persisted: aggregated power, job success chances, cooldown remaining and
income projection.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

from ..config import Catalog, GameRules
from ..state.schema import Agent, InteractionType
from ..state.store import WorldStore
from .cooldowns import CooldownLedger
from .errors import AgentNotFound
from .income import IncomeAccrual
from .jobs import calculate_success_rate
from .leveling import level_progress
from .power import calculate_total_power


@dataclass
class AgentStatus:
    """Snapshot view of one agent for display or API callers."""
    id: str
    name: str
    persona: str
    level: int
    experience: int
    cash: int
    respect: int
    energy: int
    max_energy: int
    health: int
    max_health: int
    attack: int
    defense: int
    family_id: str | None
    family_name: str | None
    progress: dict = field(default_factory=dict)
    job_success: dict[str, int] = field(default_factory=dict)  # job id -> percent
    income: dict = field(default_factory=dict)
    attack_cooldowns: dict[str, int] = field(default_factory=dict)  # target id -> seconds

    @property
    def power(self) -> int:
        return self.attack + self.defense

    def to_dict(self) -> dict:
        data = asdict(self)
        data["power"] = self.power
        next_payout = data["income"].get("next_payout_at")
        if isinstance(next_payout, datetime):
            data["income"]["next_payout_at"] = next_payout.isoformat()
        return data


def attack_cooldowns(
    store: WorldStore,
    ledger: CooldownLedger,
    agent: Agent,
    now: datetime,
) -> dict[str, int]:
    """Seconds left on each of the agent's active attack cooldowns."""
    remaining = {}
    for other in store.list_agents():
        if other.id == agent.id:
            continue
        status = ledger.can_interact(agent.id, other.id, InteractionType.ATTACK, now)
        if not status.allowed:
            remaining[other.id] = status.remaining_seconds
    return remaining


def describe_agent(
    store: WorldStore,
    agent_id: str,
    rules: GameRules,
    catalog: Catalog,
    now: datetime | None = None,
) -> AgentStatus:
    """Build the full read-model for one agent."""
    now = now or datetime.now()
    agent = store.get_agent(agent_id)
    if agent is None:
        raise AgentNotFound(agent_id)

    family = store.get_family(agent.family_id) if agent.family_id else None
    power = calculate_total_power(agent, family)
    ledger = CooldownLedger(store, rules.cooldowns)
    income = IncomeAccrual(store, rules.income)

    job_success = {
        job.id: round(calculate_success_rate(agent, job, rules.jobs) * 100)
        for job in catalog.jobs
        if job.level_required <= agent.level
    }

    return AgentStatus(
        id=agent.id,
        name=agent.name,
        persona=agent.persona,
        level=agent.level,
        experience=agent.experience,
        cash=agent.cash,
        respect=agent.respect,
        energy=agent.energy,
        max_energy=agent.max_energy,
        health=agent.health,
        max_health=agent.max_health,
        attack=power.attack,
        defense=power.defense,
        family_id=family.id if family else None,
        family_name=family.name if family else None,
        progress=level_progress(agent.experience),
        job_success=job_success,
        income=income.projection(agent, now),
        attack_cooldowns=attack_cooldowns(store, ledger, agent, now),
    )
