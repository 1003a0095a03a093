"""
Energy regeneration with remainder-preserving catch-up.

Energy accrues in whole intervals since the agent's anchor timestamp.
The anchor advances by exactly the intervals consumed, never to "now",
so partial progress toward the next point is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..config import RegenPolicy
from ..state.event_bus import EventType, get_event_bus
from ..state.schema import Agent
from ..state.store import WorldStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegenResult:
    """Outcome of one catch-up computation."""
    energy: int
    anchor: datetime
    added: int
    intervals: int

    @property
    def changed(self) -> bool:
        return self.added > 0


def compute_regen(
    energy: int,
    max_energy: int,
    anchor: datetime,
    now: datetime,
    policy: RegenPolicy,
) -> RegenResult:
    """
    Pure catch-up computation.

    No-op (same energy, same anchor) when no whole interval has passed or
    the agent is already at max.
    """
    intervals = int((now - anchor) // policy.interval)

    if intervals <= 0 or energy >= max_energy:
        return RegenResult(energy=energy, anchor=anchor, added=0, intervals=0)

    added = min(intervals * policy.rate, max_energy - energy)
    return RegenResult(
        energy=energy + added,
        anchor=anchor + intervals * policy.interval,
        added=added,
        intervals=intervals,
    )


class ResourceClock:
    """
    Applies catch-up regen to stored agents.

    Idempotent: a second call with the same ``now`` finds no whole
    interval since the advanced anchor and writes nothing.
    """

    def __init__(self, store: WorldStore, policy: RegenPolicy | None = None):
        self.store = store
        self.policy = policy or RegenPolicy()

    def regenerate(self, agent: Agent, now: datetime | None = None) -> int:
        """
        Catch up one agent's energy. Returns the energy after regen.

        ``agent`` is a snapshot; the write is a relative increment plus
        the new anchor.
        """
        now = now or datetime.now()
        result = compute_regen(
            agent.energy, agent.max_energy, agent.energy_regen_at, now, self.policy
        )
        if not result.changed:
            return agent.energy

        self.store.increment(agent.id, energy=result.added)
        updated = self.store.update(agent.id, energy_regen_at=result.anchor)

        get_event_bus().emit(
            EventType.ENERGY_REGENERATED,
            agent_id=agent.id,
            added=result.added,
            energy=updated.energy,
            intervals=result.intervals,
        )
        return updated.energy

    def regenerate_all(self, now: datetime | None = None) -> int:
        """
        Sweep every agent below max energy with a stale anchor.

        Each agent is handled independently; one failure is logged and the
        sweep moves on. Returns the number of agents that gained energy.
        """
        now = now or datetime.now()
        updated = 0

        for agent in self.store.regen_candidates(now - self.policy.interval):
            try:
                before = agent.energy
                if self.regenerate(agent, now) > before:
                    updated += 1
            except Exception:
                logger.exception(f"Energy regen failed for agent {agent.id}")

        logger.debug(f"Energy sweep updated {updated} agents")
        return updated
