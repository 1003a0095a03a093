"""
World lifecycle and system wiring.

WorldManager owns the store, the rules, the catalog and the random source,
and hands them to each game system on first use.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .schema import Agent
from .store import JsonWorldStore, MemoryWorldStore, WorldStore

if TYPE_CHECKING:
    from ..config import Catalog, GameRules

logger = logging.getLogger(__name__)


class WorldManager:
    """
    Entry point for callers that drive the world.

    Storage is delegated to a WorldStore implementation:
    - JsonWorldStore for the CLI (file-based)
    - MemoryWorldStore for testing and embedding

    Systems are built lazily and share one rng, so a seeded manager
    replays identically.
    """

    def __init__(
        self,
        store: WorldStore | Path | str | None = None,
        rules: GameRules | None = None,
        catalog: Catalog | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            store: WorldStore instance, or a path for JsonWorldStore
            rules: Policy table (defaults if omitted)
            catalog: Jobs, equipment and properties (built-in if omitted)
            rng: Shared random source
        """
        # Deferred: config imports the schema through this package
        from ..config import GameRules, default_catalog

        if store is None:
            self.store = MemoryWorldStore()
        elif isinstance(store, (Path, str)):
            self.store = JsonWorldStore(store)
        else:
            self.store = store

        self.rules = rules or GameRules()
        self.catalog = catalog or default_catalog()
        self.rng = rng or random.Random()

        # Game systems (lazily initialized)
        self._clock = None
        self._ledger = None
        self._combat = None
        self._jobs = None
        self._income = None
        self._families = None
        self._market = None
        self._buildings = None
        self._scheduler = None

    # -------------------------------------------------------------------------
    # Systems
    # -------------------------------------------------------------------------

    @property
    def clock(self):
        """Energy regeneration."""
        if self._clock is None:
            from ..systems.energy import ResourceClock
            self._clock = ResourceClock(self.store, self.rules.regen)
        return self._clock

    @property
    def ledger(self):
        """Cooldown ledger."""
        if self._ledger is None:
            from ..systems.cooldowns import CooldownLedger
            self._ledger = CooldownLedger(self.store, self.rules.cooldowns)
        return self._ledger

    @property
    def combat(self):
        if self._combat is None:
            from ..systems.combat import CombatResolver
            self._combat = CombatResolver(
                self.store, self.ledger, self.rules.combat, clock=self.clock, rng=self.rng
            )
        return self._combat

    @property
    def jobs(self):
        if self._jobs is None:
            from ..systems.jobs import JobResolver
            self._jobs = JobResolver(
                self.store,
                self.catalog,
                self.rules.jobs,
                clock=self.clock,
                rng=self.rng,
                leveling=self.rules.leveling,
            )
        return self._jobs

    @property
    def income(self):
        if self._income is None:
            from ..systems.income import IncomeAccrual
            self._income = IncomeAccrual(self.store, self.rules.income)
        return self._income

    @property
    def families(self):
        if self._families is None:
            from ..systems.families import FamilySystem
            self._families = FamilySystem(self.store, self.rules.families, rng=self.rng)
        return self._families

    @property
    def market(self):
        if self._market is None:
            from ..systems.market import MarketSystem
            self._market = MarketSystem(self.store, self.catalog, self.rules.market)
        return self._market

    @property
    def buildings(self):
        if self._buildings is None:
            from ..systems.buildings import BuildingSystem
            self._buildings = BuildingSystem(
                self.store,
                self.ledger,
                self.rules.buildings,
                clock=self.clock,
                income=self.income,
                rng=self.rng,
                leveling=self.rules.leveling,
            )
        return self._buildings

    @property
    def scheduler(self):
        """Autonomous tick scheduler."""
        if self._scheduler is None:
            from ..simulation.scheduler import AutonomousTickScheduler
            self._scheduler = AutonomousTickScheduler(
                self.store,
                jobs=self.jobs,
                combat=self.combat,
                families=self.families,
                clock=self.clock,
                ledger=self.ledger,
                policy=self.rules.scheduler,
                rng=self.rng,
            )
        return self._scheduler

    # -------------------------------------------------------------------------
    # Agents
    # -------------------------------------------------------------------------

    def create_agent(
        self,
        username: str,
        display_name: str = "",
        persona: str = "default",
        now: datetime | None = None,
        **stats,
    ) -> Agent:
        """
        Register a new agent. Extra keyword arguments set starting stats.

        Raises ValueError for a taken username or out-of-range stats.
        """
        if self.store.find_agent(username) is not None:
            raise ValueError(f"Username already taken: {username}")

        now = now or datetime.now()
        agent = Agent(
            username=username,
            display_name=display_name,
            persona=persona,
            energy_regen_at=now,
            created_at=now,
            **stats,
        )
        self.store.save_agent(agent)
        logger.info(f"Created agent {agent.id} ({agent.username})")
        return agent

    def require_agent(self, key: str) -> Agent:
        """Find an agent by id or username or raise AgentNotFound."""
        from ..systems.errors import AgentNotFound

        agent = self.store.find_agent(key)
        if agent is None:
            raise AgentNotFound(key)
        return agent

    def status(self, key: str, now: datetime | None = None):
        """Derived read-model for one agent."""
        from ..systems.views import describe_agent

        agent = self.require_agent(key)
        return describe_agent(self.store, agent.id, self.rules, self.catalog, now)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> Path | None:
        """Flush file-backed stores. A memory store has nothing to flush."""
        flush = getattr(self.store, "flush", None)
        if flush is None:
            return None
        path = flush()
        logger.debug(f"World saved to {path}")
        return path
