"""
World storage abstraction.

Separates persistence from the simulation rules for testability. The
rules only ever read snapshots and write through relative increments,
absolute sets, inserts and upserts.
"""

import json
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable

from .schema import (
    Agent,
    CombatRecord,
    Cooldown,
    Equipment,
    Family,
    InteractionType,
    JobHistoryRecord,
    Property,
    WorldSnapshot,
)


# Agent fields that accept relative increments
COUNTER_FIELDS = frozenset({
    "cash",
    "respect",
    "experience",
    "level",
    "energy",
    "max_energy",
    "health",
    "max_health",
    "base_attack",
    "base_defense",
})


@runtime_checkable
class WorldStore(Protocol):
    """
    Storage interface consumed by the simulation core.

    Implementations:
    - MemoryWorldStore: In-memory storage (testing, embedding)
    - JsonWorldStore: Memory store persisted to a JSON file (CLI)

    Reads return detached snapshots. ``increment`` must be atomic and keeps
    the energy/health invariants; ``transaction`` groups writes so they
    commit or roll back together.
    """

    def get_agent(self, agent_id: str) -> Agent | None:
        ...

    def find_agent(self, key: str) -> Agent | None:
        """Look up by id or username."""
        ...

    def list_agents(self) -> list[Agent]:
        ...

    def save_agent(self, agent: Agent) -> None:
        ...

    def increment(self, agent_id: str, **deltas: int) -> Agent:
        ...

    def update(self, agent_id: str, **fields) -> Agent:
        ...

    def idle_agents(self, before: datetime, limit: int) -> list[Agent]:
        ...

    def regen_candidates(self, anchor_before: datetime) -> list[Agent]:
        ...

    def get_family(self, family_id: str) -> Family | None:
        ...

    def list_families(self) -> list[Family]:
        ...

    def save_family(self, family: Family) -> None:
        ...

    def delete_family(self, family_id: str) -> bool:
        ...

    def family_members(self, family_id: str) -> list[Agent]:
        ...

    def get_cooldown(
        self, agent_id: str, target_id: str, type: InteractionType
    ) -> Cooldown | None:
        ...

    def upsert_cooldown(self, cooldown: Cooldown) -> None:
        ...

    def add_equipment(self, agent_id: str, item: Equipment) -> Equipment:
        ...

    def update_equipment(self, agent_id: str, equipment_id: str, **fields) -> Equipment:
        ...

    def add_property(self, agent_id: str, prop: Property) -> Property:
        ...

    def update_property(self, agent_id: str, property_id: str, **fields) -> Property:
        ...

    def add_combat(self, record: CombatRecord) -> None:
        ...

    def add_job_history(self, record: JobHistoryRecord) -> None:
        ...

    def combat_history(self, agent_id: str | None = None, limit: int = 20) -> list[CombatRecord]:
        ...

    def job_history(self, agent_id: str | None = None, limit: int = 20) -> list[JobHistoryRecord]:
        ...

    def transaction(self):
        ...


class MemoryWorldStore:
    """
    In-memory world storage.

    A single re-entrant lock serialises every call, which makes each
    increment atomic. ``transaction()`` snapshots the world and restores it
    if the block raises.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self.agents: dict[str, Agent] = {}
        self.families: dict[str, Family] = {}
        self.cooldowns: dict[tuple[str, str, str], Cooldown] = {}
        self.combats: list[CombatRecord] = []
        self.jobs: list[JobHistoryRecord] = []

    # -------------------------------------------------------------------------
    # Agents
    # -------------------------------------------------------------------------

    def _agent(self, agent_id: str) -> Agent:
        agent = self.agents.get(agent_id)
        if agent is None:
            raise KeyError(f"Agent not found: {agent_id}")
        return agent

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._lock:
            agent = self.agents.get(agent_id)
            return agent.model_copy(deep=True) if agent else None

    def find_agent(self, key: str) -> Agent | None:
        """Look up by id, then by username (with or without a leading @)."""
        with self._lock:
            if key in self.agents:
                return self.agents[key].model_copy(deep=True)
            username = key.lstrip("@")
            for agent in self.agents.values():
                if agent.username == username:
                    return agent.model_copy(deep=True)
        return None

    def list_agents(self) -> list[Agent]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self.agents.values()]

    def save_agent(self, agent: Agent) -> None:
        with self._lock:
            self.agents[agent.id] = agent.model_copy(deep=True)

    def increment(self, agent_id: str, **deltas: int) -> Agent:
        """
        Apply relative changes atomically.

        Energy is clamped to [0, max_energy] and health to [1, max_health]
        after the deltas land. Cash is left unbounded.
        """
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            raise ValueError(f"Not incrementable: {', '.join(sorted(unknown))}")

        with self._lock:
            agent = self._agent(agent_id)
            for name, delta in deltas.items():
                setattr(agent, name, getattr(agent, name) + delta)
            agent.energy = max(0, min(agent.energy, agent.max_energy))
            agent.health = max(1, min(agent.health, agent.max_health))
            return agent.model_copy(deep=True)

    def update(self, agent_id: str, **fields) -> Agent:
        """Set fields to absolute values."""
        with self._lock:
            agent = self._agent(agent_id)
            for name, value in fields.items():
                if name not in Agent.model_fields:
                    raise ValueError(f"Unknown agent field: {name}")
                setattr(agent, name, value)
            return agent.model_copy(deep=True)

    def idle_agents(self, before: datetime, limit: int) -> list[Agent]:
        """
        Agents idle since before ``before``, oldest first.

        Agents that have never acted sort ahead of everyone else.
        """
        with self._lock:
            idle = [
                a for a in self.agents.values()
                if a.last_active is None or a.last_active < before
            ]
            idle.sort(key=lambda a: (a.last_active is not None, a.last_active or datetime.min))
            return [a.model_copy(deep=True) for a in idle[:limit]]

    def regen_candidates(self, anchor_before: datetime) -> list[Agent]:
        """Agents below max energy whose regen anchor is older than anchor_before."""
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self.agents.values()
                if a.energy < a.max_energy and a.energy_regen_at < anchor_before
            ]

    # -------------------------------------------------------------------------
    # Families
    # -------------------------------------------------------------------------

    def get_family(self, family_id: str) -> Family | None:
        with self._lock:
            family = self.families.get(family_id)
            return family.model_copy(deep=True) if family else None

    def list_families(self) -> list[Family]:
        with self._lock:
            return [f.model_copy(deep=True) for f in self.families.values()]

    def save_family(self, family: Family) -> None:
        with self._lock:
            self.families[family.id] = family.model_copy(deep=True)

    def delete_family(self, family_id: str) -> bool:
        with self._lock:
            return self.families.pop(family_id, None) is not None

    def family_members(self, family_id: str) -> list[Agent]:
        """Members in join order."""
        with self._lock:
            members = [a for a in self.agents.values() if a.family_id == family_id]
            members.sort(key=lambda a: a.family_joined_at or datetime.min)
            return [a.model_copy(deep=True) for a in members]

    # -------------------------------------------------------------------------
    # Cooldowns
    # -------------------------------------------------------------------------

    def get_cooldown(
        self, agent_id: str, target_id: str, type: InteractionType
    ) -> Cooldown | None:
        with self._lock:
            cooldown = self.cooldowns.get((agent_id, target_id, type.value))
            return cooldown.model_copy() if cooldown else None

    def upsert_cooldown(self, cooldown: Cooldown) -> None:
        with self._lock:
            self.cooldowns[cooldown.key] = cooldown.model_copy()

    # -------------------------------------------------------------------------
    # Owned items
    # -------------------------------------------------------------------------

    def add_equipment(self, agent_id: str, item: Equipment) -> Equipment:
        with self._lock:
            self._agent(agent_id).equipment.append(item.model_copy())
            return item

    def update_equipment(self, agent_id: str, equipment_id: str, **fields) -> Equipment:
        with self._lock:
            for item in self._agent(agent_id).equipment:
                if item.id == equipment_id:
                    for name, value in fields.items():
                        setattr(item, name, value)
                    return item.model_copy()
        raise KeyError(f"Equipment not found: {equipment_id}")

    def add_property(self, agent_id: str, prop: Property) -> Property:
        with self._lock:
            self._agent(agent_id).properties.append(prop.model_copy())
            return prop

    def update_property(self, agent_id: str, property_id: str, **fields) -> Property:
        with self._lock:
            for prop in self._agent(agent_id).properties:
                if prop.id == property_id:
                    for name, value in fields.items():
                        setattr(prop, name, value)
                    return prop.model_copy()
        raise KeyError(f"Property not found: {property_id}")

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def add_combat(self, record: CombatRecord) -> None:
        with self._lock:
            self.combats.append(record)

    def add_job_history(self, record: JobHistoryRecord) -> None:
        with self._lock:
            self.jobs.append(record)

    def combat_history(self, agent_id: str | None = None, limit: int = 20) -> list[CombatRecord]:
        """Newest first; with agent_id, fights on either side."""
        with self._lock:
            records = [
                r for r in self.combats
                if agent_id is None or agent_id in (r.attacker_id, r.defender_id)
            ]
        return list(reversed(records))[:limit]

    def job_history(self, agent_id: str | None = None, limit: int = 20) -> list[JobHistoryRecord]:
        with self._lock:
            records = [r for r in self.jobs if agent_id is None or r.agent_id == agent_id]
        return list(reversed(records))[:limit]

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _snapshot(self) -> tuple:
        return (
            {k: v.model_copy(deep=True) for k, v in self.agents.items()},
            {k: v.model_copy(deep=True) for k, v in self.families.items()},
            dict(self.cooldowns),
            len(self.combats),
            len(self.jobs),
        )

    def _restore(self, snapshot: tuple) -> None:
        agents, families, cooldowns, combat_count, job_count = snapshot
        self.agents = agents
        self.families = families
        self.cooldowns = cooldowns
        del self.combats[combat_count:]
        del self.jobs[job_count:]

    @contextmanager
    def transaction(self) -> Iterator["MemoryWorldStore"]:
        """
        Group writes into one atomic unit.

        Holds the store lock for the whole block, so no other caller sees
        a partial state. Nested transactions join the outermost one.
        """
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def to_snapshot(self) -> WorldSnapshot:
        with self._lock:
            return WorldSnapshot(
                agents=list(self.agents.values()),
                families=list(self.families.values()),
                cooldowns=list(self.cooldowns.values()),
                combats=list(self.combats),
                job_history=list(self.jobs),
            )

    def load_snapshot(self, snapshot: WorldSnapshot) -> None:
        with self._lock:
            self.agents = {a.id: a for a in snapshot.agents}
            self.families = {f.id: f for f in snapshot.families}
            self.cooldowns = {c.key: c for c in snapshot.cooldowns}
            self.combats = list(snapshot.combats)
            self.jobs = list(snapshot.job_history)

    def clear(self) -> None:
        """Drop everything (test utility)."""
        with self._lock:
            self.load_snapshot(WorldSnapshot())


class JsonWorldStore(MemoryWorldStore):
    """
    Memory store backed by a JSON file.

    Loads on construction; ``flush()`` writes the file, keeping the
    previous save as a ``.bak`` alongside.
    """

    def __init__(self, path: Path | str = "world.json"):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.load_snapshot(WorldSnapshot.model_validate(data))

    def flush(self) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.path.exists():
            backup = self.path.with_suffix(".json.bak")
            backup.write_text(self.path.read_text(encoding="utf-8"), encoding="utf-8")

        snapshot = self.to_snapshot()
        self.path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        return self.path
