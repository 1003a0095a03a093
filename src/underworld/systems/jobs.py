"""
Job resolution for the underworld.

Handles job lookup, availability, and probabilistic execution. A job that
passes its level and energy checks always costs its energy; success pays
cash, respect and full experience, failure pays a quarter of the experience.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime

from ..config import Catalog, JobPolicy, LevelPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import (
    ActionKind,
    ActivityEvent,
    Agent,
    JobHistoryRecord,
    JobTemplate,
)
from ..state.store import WorldStore
from .energy import ResourceClock
from .errors import AgentNotFound, InsufficientEnergy, LevelTooLow, UnknownCatalogEntry
from .leveling import apply_experience


def calculate_success_rate(agent: Agent, job: JobTemplate, policy: JobPolicy) -> float:
    """
    Effective success chance, clamped to [0, success_cap].

    base + (level surplus * bonus_per_level) + equipped job bonuses
    """
    rate = job.base_success_rate
    rate += (agent.level - job.level_required) * policy.bonus_per_level
    rate += sum(item.job_bonus for item in agent.equipped)
    return max(0.0, min(rate, policy.success_cap))


@dataclass
class JobOutcome:
    """Result of one job attempt."""
    job: JobTemplate
    success: bool
    roll: float
    success_rate: float
    cash_earned: int
    respect_earned: int
    exp_earned: int
    energy_spent: int
    energy_remaining: int
    level: int
    leveled_up: bool
    record: JobHistoryRecord
    activity: ActivityEvent

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "job": {"name": self.job.name, "category": self.job.category},
            "result": {
                "roll": round(self.roll * 100),
                "success_rate": round(self.success_rate * 100),
                "cash_earned": self.cash_earned,
                "respect_earned": self.respect_earned,
                "exp_earned": self.exp_earned,
            },
            "agent": {
                "energy_spent": self.energy_spent,
                "energy_remaining": self.energy_remaining,
                "level": self.level,
                "leveled_up": self.leveled_up,
            },
            "message": self.activity.result_text,
        }


class JobResolver:
    """
    Executes jobs from the catalog against stored agents.

    Requires a store for persistence and the catalog for job lookup.
    """

    def __init__(
        self,
        store: WorldStore,
        catalog: Catalog,
        policy: JobPolicy | None = None,
        clock: ResourceClock | None = None,
        rng: random.Random | None = None,
        leveling: LevelPolicy | None = None,
    ):
        self.store = store
        self.catalog = catalog
        self.policy = policy or JobPolicy()
        self.clock = clock
        self.rng = rng or random.Random()
        self.leveling = leveling or LevelPolicy()

    def get_job(self, key: str) -> JobTemplate:
        """Get a job by id or name. Raises UnknownCatalogEntry."""
        job = self.catalog.get_job(key)
        if job is None:
            raise UnknownCatalogEntry("job", key)
        return job

    def available_jobs(self, agent: Agent, energy: int | None = None) -> list[JobTemplate]:
        """
        Jobs the agent's level unlocks.

        With ``energy``, only jobs the agent can currently afford.
        """
        return [
            job for job in self.catalog.jobs
            if job.level_required <= agent.level
            and (energy is None or job.energy_cost <= energy)
        ]

    def execute(
        self,
        agent_id: str,
        job_key: str,
        now: datetime | None = None,
    ) -> JobOutcome:
        """
        Attempt a job.

        Args:
            agent_id: Acting agent
            job_key: Job id or name

        Returns:
            JobOutcome with rewards and the written history record

        Raises:
            AgentNotFound, UnknownCatalogEntry, LevelTooLow, InsufficientEnergy
        """
        now = now or datetime.now()

        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)
        job = self.get_job(job_key)

        if agent.level < job.level_required:
            raise LevelTooLow(job.level_required, agent.level)

        energy = agent.energy
        if self.clock is not None:
            energy = self.clock.regenerate(agent, now)
        if energy < job.energy_cost:
            raise InsufficientEnergy(job.energy_cost, energy)

        success_rate = calculate_success_rate(agent, job, self.policy)
        roll = self.rng.random()
        success = roll < success_rate

        if success:
            cash = self.rng.randint(job.cash_min, job.cash_max)
            respect = job.respect_reward
            exp = job.exp_reward
        else:
            cash = 0
            respect = 0
            exp = math.floor(job.exp_reward * self.policy.failure_exp_ratio)

        new_level, energy_growth = apply_experience(agent.level, agent.experience, exp, self.leveling)
        leveled_up = new_level > agent.level

        record = JobHistoryRecord(
            agent_id=agent.id,
            job_id=job.id,
            success=success,
            success_rate=success_rate,
            cash_earned=cash,
            respect_earned=respect,
            exp_earned=exp,
            leveled_up=leveled_up,
            created_at=now,
        )

        with self.store.transaction():
            self.store.increment(
                agent.id,
                energy=-job.energy_cost,
                cash=cash,
                respect=respect,
                experience=exp,
                max_energy=energy_growth,
            )
            updated = self.store.update(agent.id, level=new_level, last_active=now)
            self.store.add_job_history(record)

        if success:
            activity = ActivityEvent(
                agent_display_name=agent.name,
                action_kind=ActionKind.WORK,
                result_text=f'Completed "{job.name}"',
                rewards={"cash": f"+${cash:,}", "respect": f"+{respect}", "exp": f"+{exp}"},
                created_at=now,
            )
        else:
            activity = ActivityEvent(
                agent_display_name=agent.name,
                action_kind=ActionKind.WORK,
                result_text=f'Failed "{job.name}"',
                rewards={"exp": f"+{exp}"},
                created_at=now,
            )

        bus = get_event_bus()
        bus.emit(
            EventType.JOB_COMPLETED if success else EventType.JOB_FAILED,
            agent_id=agent.id,
            job_id=job.id,
            title=job.name,
            cash_earned=cash,
            exp_earned=exp,
        )
        if leveled_up:
            bus.emit(
                EventType.LEVEL_UP,
                agent_id=agent.id,
                before=agent.level,
                after=new_level,
            )
        publish_activity(activity, agent_id=agent.id)

        return JobOutcome(
            job=job,
            success=success,
            roll=roll,
            success_rate=success_rate,
            cash_earned=cash,
            respect_earned=respect,
            exp_earned=exp,
            energy_spent=job.energy_cost,
            energy_remaining=updated.energy,
            level=new_level,
            leveled_up=leveled_up,
            record=record,
            activity=activity,
        )
