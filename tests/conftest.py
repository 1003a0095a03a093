"""
Pytest fixtures for underworld tests.

Provides in-memory stores, a fixed clock and scripted randomness for
isolated, deterministic testing.
"""

import random
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from underworld.config import GameRules, default_catalog
from underworld.state import (
    Agent,
    MemoryWorldStore,
    WorldManager,
    reset_event_bus,
)
from underworld.systems.cooldowns import CooldownLedger
from underworld.systems.energy import ResourceClock


class FixedRandom(random.Random):
    """
    Random source with scripted results.

    ``random()`` pops from ``randoms`` and ``randint()`` from ``ints``
    (clamped into range). When a script runs out, ``random()`` returns
    ``default`` and ``randint()`` returns its lower bound. ``choice()``
    always picks the first element.
    """

    def __init__(self, randoms=(), ints=(), default: float = 0.5):
        super().__init__(0)
        self.randoms = list(randoms)
        self.ints = list(ints)
        self.default = default

    def random(self) -> float:
        return self.randoms.pop(0) if self.randoms else self.default

    def randint(self, a: int, b: int) -> int:
        if self.ints:
            return max(a, min(b, self.ints.pop(0)))
        return a

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()

    def choice(self, seq):
        return seq[0]


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Every test starts with an empty global event bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def now():
    """Fixed reference time."""
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def memory_store():
    """In-memory world store for testing."""
    return MemoryWorldStore()


@pytest.fixture
def rules():
    return GameRules()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def clock(memory_store, rules):
    return ResourceClock(memory_store, rules.regen)


@pytest.fixture
def ledger(memory_store, rules):
    return CooldownLedger(memory_store, rules.cooldowns)


@pytest.fixture
def manager(memory_store, rules, catalog):
    """World manager over the memory store, seeded for reproducibility."""
    return WorldManager(memory_store, rules=rules, catalog=catalog, rng=random.Random(7))


@pytest.fixture
def make_agent(memory_store, now):
    """Factory that stores an agent and returns its snapshot."""
    counter = {"n": 0}

    def _make(username: str | None = None, **fields) -> Agent:
        counter["n"] += 1
        username = username or f"agent{counter['n']}"
        fields.setdefault("energy_regen_at", now)
        fields.setdefault("created_at", now)
        agent = Agent(username=username, display_name=username.title(), **fields)
        memory_store.save_agent(agent)
        return agent

    return _make


@pytest.fixture
def scripted():
    """FixedRandom factory: ``scripted(randoms=[...], ints=[...])``."""
    return FixedRandom
