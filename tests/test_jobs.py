"""Tests for job resolution."""

from datetime import timedelta

import pytest

from underworld.config import Catalog, JobPolicy, LevelPolicy
from underworld.state.event_bus import EventType, get_event_bus
from underworld.state.schema import Agent, Equipment, JobTemplate
from underworld.systems.errors import (
    AgentNotFound,
    InsufficientEnergy,
    LevelTooLow,
    UnknownCatalogEntry,
)
from underworld.systems.jobs import JobResolver, calculate_success_rate
from underworld.systems.leveling import level_for_experience


PROTECTION = "collect-protection-money"


@pytest.fixture
def resolver_for(memory_store, catalog, clock, rules):
    def _build(rng):
        return JobResolver(memory_store, catalog, rules.jobs, clock=clock, rng=rng)
    return _build


class TestSuccessRate:
    """Test the effective success chance."""

    def test_base_rate_at_required_level(self, catalog):
        job = catalog.get_job(PROTECTION)
        agent = Agent(username="v", level=1)
        assert calculate_success_rate(agent, job, JobPolicy()) == pytest.approx(0.9)

    def test_level_surplus_adds_bonus(self, catalog):
        job = catalog.get_job("run-numbers")
        agent = Agent(username="v", level=4)
        assert calculate_success_rate(agent, job, JobPolicy()) == pytest.approx(0.88)

    def test_never_exceeds_cap(self, catalog):
        """A huge level surplus still caps at 0.95."""
        job = catalog.get_job(PROTECTION)
        for level in (10, 50, 500):
            agent = Agent(username="v", level=level)
            assert calculate_success_rate(agent, job, JobPolicy()) == 0.95

    def test_equipped_gear_adds(self, catalog):
        job = catalog.get_job("hit-rival-boss")
        agent = Agent(username="v", level=18)
        agent.equipment.append(Equipment(name="Tommy Gun", job_bonus=0.1, equipped=True))
        agent.equipment.append(Equipment(name="Sports Car", job_bonus=0.12))
        assert calculate_success_rate(agent, job, JobPolicy()) == pytest.approx(0.35)

    def test_never_below_zero(self):
        job = JobTemplate(id="x", name="X", energy_cost=1, cash_min=0, cash_max=0, base_success_rate=0.01)
        agent = Agent(username="v", level=1)
        policy = JobPolicy(bonus_per_level=0.5)
        hard = job.model_copy(update={"level_required": 10})
        assert calculate_success_rate(agent, hard, policy) == 0.0


class TestExecute:
    """Test job execution against the store."""

    def test_end_to_end_success(self, resolver_for, scripted, memory_store, make_agent, now):
        """Forced success: energy 100 -> 95, cash lands in range, level recomputed."""
        agent = make_agent(cash=5000, energy=100)
        outcome = resolver_for(scripted(randoms=[0.0], ints=[250])).execute(agent.id, PROTECTION, now)

        stored = memory_store.get_agent(agent.id)
        assert outcome.success
        assert stored.energy == 95
        assert 5100 <= stored.cash <= 5300
        assert stored.cash == 5250
        assert stored.respect == 1
        assert stored.experience == 10
        assert stored.level == level_for_experience(10)
        assert stored.last_active == now

    def test_failure_costs_energy_and_pays_quarter_exp(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent(cash=5000)
        outcome = resolver_for(scripted(randoms=[0.95])).execute(agent.id, PROTECTION, now)

        stored = memory_store.get_agent(agent.id)
        assert not outcome.success
        assert stored.energy == 95
        assert stored.cash == 5000
        assert stored.respect == 0
        assert stored.experience == 2

    def test_roll_equal_to_rate_fails(self, resolver_for, scripted, make_agent, now):
        """Success needs U strictly below the rate."""
        agent = make_agent()
        outcome = resolver_for(scripted(randoms=[0.9])).execute(agent.id, PROTECTION, now)
        assert not outcome.success

    def test_level_up_raises_max_energy(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent(experience=95)
        outcome = resolver_for(scripted(randoms=[0.0])).execute(agent.id, PROTECTION, now)

        stored = memory_store.get_agent(agent.id)
        assert outcome.leveled_up
        assert stored.level == 2
        assert stored.max_energy == 105
        events = get_event_bus().get_history(EventType.LEVEL_UP)
        assert len(events) == 1
        assert events[0].data == {"before": 1, "after": 2}

    def test_level_up_growth_follows_policy(self, memory_store, catalog, scripted, make_agent, now):
        agent = make_agent(experience=95)
        resolver = JobResolver(
            memory_store, catalog, rng=scripted(randoms=[0.0]), leveling=LevelPolicy(max_energy_per_level=10)
        )
        resolver.execute(agent.id, PROTECTION, now)
        assert memory_store.get_agent(agent.id).max_energy == 110

    def test_writes_history(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent()
        outcome = resolver_for(scripted(randoms=[0.0], ints=[120])).execute(agent.id, PROTECTION, now)

        history = memory_store.job_history(agent.id)
        assert history == [outcome.record]
        assert history[0].success
        assert history[0].cash_earned == 120
        assert history[0].success_rate == pytest.approx(0.9)

    def test_lookup_by_name(self, resolver_for, scripted, make_agent, now):
        agent = make_agent()
        outcome = resolver_for(scripted()).execute(agent.id, "Run Numbers", now)
        assert outcome.job.id == "run-numbers"

    def test_regen_before_energy_check(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent(energy=3, energy_regen_at=now - timedelta(minutes=10))
        resolver_for(scripted()).execute(agent.id, PROTECTION, now)
        assert memory_store.get_agent(agent.id).energy == 0

    def test_events(self, resolver_for, scripted, make_agent, now):
        agent = make_agent("vito")
        resolver_for(scripted(randoms=[0.0], ints=[200])).execute(agent.id, PROTECTION, now)

        bus = get_event_bus()
        assert len(bus.get_history(EventType.JOB_COMPLETED)) == 1
        feed = bus.get_history(EventType.ACTIVITY)
        assert feed[0].data["result_text"] == 'Completed "Collect Protection Money"'
        assert feed[0].data["rewards"] == {"cash": "+$200", "respect": "+1", "exp": "+10"}

    def test_failure_event(self, resolver_for, scripted, make_agent, now):
        agent = make_agent()
        resolver_for(scripted(randoms=[0.99])).execute(agent.id, PROTECTION, now)
        bus = get_event_bus()
        assert len(bus.get_history(EventType.JOB_FAILED)) == 1
        assert bus.get_history(EventType.ACTIVITY)[0].data["rewards"] == {"exp": "+2"}


class TestExecuteRejections:
    """Test that rejected jobs leave the agent untouched."""

    def test_level_too_low(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent()
        with pytest.raises(LevelTooLow) as exc:
            resolver_for(scripted()).execute(agent.id, "steal-car-parts", now)
        assert exc.value.required == 2
        assert memory_store.get_agent(agent.id) == agent

    def test_not_enough_energy(self, resolver_for, scripted, memory_store, make_agent, now):
        agent = make_agent(energy=4)
        with pytest.raises(InsufficientEnergy) as exc:
            resolver_for(scripted()).execute(agent.id, PROTECTION, now)
        assert exc.value.to_dict() == {
            "error": "Not enough energy: need 5, have 4",
            "reason": "energy",
            "required": 5,
            "available": 4,
        }
        assert memory_store.get_agent(agent.id) == agent
        assert memory_store.job_history() == []

    def test_unknown_job(self, resolver_for, scripted, make_agent, now):
        agent = make_agent()
        with pytest.raises(UnknownCatalogEntry):
            resolver_for(scripted()).execute(agent.id, "rob-the-moon", now)

    def test_missing_agent(self, resolver_for, scripted, now):
        with pytest.raises(AgentNotFound):
            resolver_for(scripted()).execute("ghost", PROTECTION, now)


class TestAvailableJobs:
    """Test job listings."""

    def test_by_level(self, resolver_for, scripted):
        resolver = resolver_for(scripted())
        jobs = resolver.available_jobs(Agent(username="v", level=1))
        assert [j.id for j in jobs] == [PROTECTION, "run-numbers"]

    def test_by_energy(self, resolver_for, scripted):
        resolver = resolver_for(scripted())
        agent = Agent(username="v", level=2)
        assert resolver.available_jobs(agent, energy=4) == []
        assert len(resolver.available_jobs(agent, energy=5)) == 2
        assert len(resolver.available_jobs(agent, energy=8)) == 4

    def test_custom_catalog(self, memory_store, scripted, make_agent, now):
        job = JobTemplate(
            id="deliver", name="Deliver", energy_cost=5, cash_min=100, cash_max=300,
            respect_reward=2, exp_reward=20, base_success_rate=0.9,
        )
        resolver = JobResolver(memory_store, Catalog(jobs=[job]), rng=scripted(randoms=[0.1], ints=[300]))
        agent = make_agent(cash=5000)
        outcome = resolver.execute(agent.id, "deliver", now)
        assert outcome.cash_earned == 300
        assert memory_store.get_agent(agent.id).cash == 5300
