"""
Autonomous tick scheduler.

Advances agents nobody has driven for a while. Each tick takes a bounded
batch of idle agents, oldest first, and lets each one act according to its
persona. Agents are processed independently: a failure is logged and the
rest of the batch carries on.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from ..config import SchedulerPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import ActionKind, ActivityEvent, Agent, InteractionType
from ..state.store import WorldStore
from ..systems.combat import CombatResolver
from ..systems.cooldowns import CooldownLedger
from ..systems.energy import ResourceClock
from ..systems.errors import ActionRejected
from ..systems.families import FamilySystem
from ..systems.jobs import JobResolver
from .personas import decide_action

logger = logging.getLogger(__name__)


@dataclass
class AgentTurn:
    """One agent's action within a tick."""
    agent_id: str
    agent_name: str
    action: ActionKind
    result_text: str
    rewards: dict[str, str] = field(default_factory=dict)
    rejected: bool = False


@dataclass
class TickReport:
    """Outcome of one scheduler sweep."""
    started_at: datetime
    selected: int = 0
    turns: list[AgentTurn] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.turns)

    def counts(self) -> dict[str, int]:
        """Actions taken, by kind."""
        counts: dict[str, int] = {}
        for turn in self.turns:
            counts[turn.action.value] = counts.get(turn.action.value, 0) + 1
        return counts

    def summary(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "selected": self.selected,
            "processed": self.processed,
            "failed": len(self.failed),
            "actions": self.counts(),
        }


class AutonomousTickScheduler:
    """
    Picks idle agents and dispatches persona-driven actions.

    There is no locking across ticks: two overlapping ticks may both pick
    the same agent. Every write is an increment or an idempotent catch-up,
    so the worst case is an agent acting twice.
    """

    def __init__(
        self,
        store: WorldStore,
        jobs: JobResolver,
        combat: CombatResolver,
        families: FamilySystem,
        clock: ResourceClock,
        ledger: CooldownLedger,
        policy: SchedulerPolicy | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.jobs = jobs
        self.combat = combat
        self.families = families
        self.clock = clock
        self.ledger = ledger
        self.policy = policy or SchedulerPolicy()
        self.rng = rng or random.Random()

    def select_idle_agents(self, now: datetime | None = None) -> list[Agent]:
        """Agents inactive for longer than the idle threshold, oldest first."""
        now = now or datetime.now()
        return self.store.idle_agents(now - self.policy.idle_threshold, self.policy.batch_size)

    def decide(self, agent: Agent) -> ActionKind:
        return decide_action(agent, self.rng.random(), self.policy)

    def find_target(self, agent: Agent, now: datetime | None = None) -> Agent | None:
        """
        Random opponent for an autonomous fight.

        Candidates are within the level range, healthy enough, outside the
        agent's family and not on cooldown. Up to ``matchmaking_pool`` are
        considered.
        """
        now = now or datetime.now()
        level_range = self.policy.matchmaking_level_range
        pool = []

        for other in self.store.list_agents():
            if other.id == agent.id:
                continue
            if abs(other.level - agent.level) > level_range:
                continue
            if other.health < self.policy.matchmaking_min_health:
                continue
            if agent.family_id and other.family_id == agent.family_id:
                continue
            if not self.ledger.can_interact(agent.id, other.id, InteractionType.ATTACK, now).allowed:
                continue
            pool.append(other)
            if len(pool) >= self.policy.matchmaking_pool:
                break

        return self.rng.choice(pool) if pool else None

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _rest(self, agent: Agent, now: datetime, text: str = "Taking a break...") -> AgentTurn:
        activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=ActionKind.REST,
            result_text=text,
            created_at=now,
        )
        publish_activity(activity, agent_id=agent.id)
        return AgentTurn(agent.id, agent.name, ActionKind.REST, text)

    def _work(self, agent: Agent, now: datetime) -> AgentTurn:
        options = self.jobs.available_jobs(agent, energy=agent.energy)
        if not options:
            return self._rest(agent, now, "Too tired for any job")

        job = self.rng.choice(options)
        outcome = self.jobs.execute(agent.id, job.id, now)
        activity = outcome.activity
        return AgentTurn(agent.id, agent.name, ActionKind.WORK, activity.result_text, dict(activity.rewards))

    def _fight(self, agent: Agent, now: datetime) -> AgentTurn:
        target = self.find_target(agent, now)
        if target is None:
            return AgentTurn(agent.id, agent.name, ActionKind.FIGHT, "No worthy opponents found")

        outcome = self.combat.attack(agent.id, target.id, now)
        activity = outcome.activity
        return AgentTurn(agent.id, agent.name, ActionKind.FIGHT, activity.result_text, dict(activity.rewards))

    def _join_family(self, agent: Agent, now: datetime) -> AgentTurn:
        if agent.family_id:
            return AgentTurn(agent.id, agent.name, ActionKind.JOIN_FAMILY, "Stays loyal to the family")

        family = self.families.join(agent.id, now=now)
        return AgentTurn(agent.id, agent.name, ActionKind.JOIN_FAMILY, f"Joined the {family.name} family")

    def advance(self, agent: Agent, now: datetime | None = None) -> AgentTurn:
        """
        Let one agent act.

        A rejected action becomes the turn's result text. Either way the
        agent's ``last_active`` is moved to ``now``.
        """
        now = now or datetime.now()
        agent.energy = self.clock.regenerate(agent, now)
        action = self.decide(agent)

        try:
            if action == ActionKind.WORK:
                turn = self._work(agent, now)
            elif action == ActionKind.FIGHT:
                turn = self._fight(agent, now)
            elif action == ActionKind.JOIN_FAMILY:
                turn = self._join_family(agent, now)
            else:
                turn = self._rest(agent, now)
        except ActionRejected as e:
            logger.debug(f"Agent {agent.id} {action.value} rejected: {e.message}")
            turn = AgentTurn(agent.id, agent.name, action, e.message, rejected=True)

        self.store.update(agent.id, last_active=now)
        return turn

    def tick(self, now: datetime | None = None) -> TickReport:
        """Run one sweep over the idle batch."""
        now = now or datetime.now()
        report = TickReport(started_at=now)
        agents = self.select_idle_agents(now)
        report.selected = len(agents)

        for agent in agents:
            try:
                report.turns.append(self.advance(agent, now))
            except Exception:
                logger.exception(f"Tick failed for agent {agent.id}")
                report.failed.append(agent.id)

        logger.info(
            f"Tick processed {report.processed}/{report.selected} agents"
            + (f", {len(report.failed)} failed" if report.failed else "")
        )
        get_event_bus().emit(EventType.TICK_COMPLETED, **report.summary())
        return report
