"""Tests for passive property income."""

from datetime import timedelta

import pytest

from underworld.state.event_bus import EventType, get_event_bus
from underworld.state.schema import Property
from underworld.systems.errors import AgentNotFound
from underworld.systems.income import IncomeAccrual, accrue_property


@pytest.fixture
def income(memory_store, rules):
    return IncomeAccrual(memory_store, rules.income)


def owned(agent, memory_store, **fields):
    prop = Property(name=fields.pop("name", "Laundromat"), **fields)
    memory_store.add_property(agent.id, prop)
    return prop


class TestAccrueProperty:
    """Test the per-property formula."""

    def test_two_and_a_half_hours(self, now):
        """150 minutes at 100/h pays 200 and keeps the 30-minute remainder."""
        prop = Property(name="Bodega", income_per_hour=100, last_income_at=now - timedelta(minutes=150))
        income, anchor = accrue_property(prop, now)
        assert income == 200
        assert anchor == now - timedelta(minutes=30)

    def test_under_an_hour(self, now):
        prop = Property(name="Bodega", income_per_hour=100, last_income_at=now - timedelta(minutes=59))
        income, anchor = accrue_property(prop, now)
        assert income == 0
        assert anchor == prop.last_income_at


class TestCollect:
    """Test collection against the store."""

    def test_collects_and_advances_anchor(self, income, memory_store, make_agent, now):
        agent = make_agent(cash=0)
        prop = owned(agent, memory_store, income_per_hour=100, last_income_at=now - timedelta(minutes=150))

        report = income.collect(agent.id, now)

        assert report.total == 200
        assert report.by_property == {prop.id: 200}
        stored = memory_store.get_agent(agent.id)
        assert stored.cash == 200
        assert stored.properties[0].last_income_at == now - timedelta(minutes=30)

    def test_sums_across_properties(self, income, memory_store, make_agent, now):
        agent = make_agent(cash=1000)
        owned(agent, memory_store, income_per_hour=50, last_income_at=now - timedelta(hours=3))
        owned(agent, memory_store, income_per_hour=500, last_income_at=now - timedelta(hours=1))
        owned(agent, memory_store, income_per_hour=80, last_income_at=now - timedelta(minutes=10))

        report = income.collect(agent.id, now)

        assert report.total == 150 + 500
        assert len(report.by_property) == 2
        assert memory_store.get_agent(agent.id).cash == 1650

    def test_repeat_does_not_double_credit(self, income, memory_store, make_agent, now):
        agent = make_agent(cash=0)
        owned(agent, memory_store, income_per_hour=100, last_income_at=now - timedelta(minutes=150))

        income.collect(agent.id, now)
        second = income.collect(agent.id, now)

        assert second.total == 0
        assert not second.collected
        assert memory_store.get_agent(agent.id).cash == 200

    def test_remainder_pays_out_later(self, income, memory_store, make_agent, now):
        """The kept 30 minutes completes an hour 30 minutes later."""
        agent = make_agent(cash=0)
        owned(agent, memory_store, income_per_hour=100, last_income_at=now - timedelta(minutes=150))

        income.collect(agent.id, now)
        later = income.collect(agent.id, now + timedelta(minutes=30))

        assert later.total == 100
        assert memory_store.get_agent(agent.id).cash == 300

    def test_no_properties(self, income, make_agent, now):
        agent = make_agent()
        report = income.collect(agent.id, now)
        assert report.total == 0
        assert get_event_bus().get_history(EventType.INCOME_COLLECTED) == []

    def test_missing_agent(self, income, now):
        with pytest.raises(AgentNotFound):
            income.collect("nobody", now)

    def test_events(self, income, memory_store, make_agent, now):
        agent = make_agent("rosa", cash=0)
        owned(agent, memory_store, income_per_hour=100, last_income_at=now - timedelta(hours=2))

        income.collect(agent.id, now)

        bus = get_event_bus()
        assert bus.get_history(EventType.INCOME_COLLECTED)[0].data["total"] == 200
        feed = bus.get_history(EventType.ACTIVITY)[0]
        assert feed.data["action_kind"] == "collect"
        assert feed.data["rewards"] == {"cash": "+$200"}


class TestProjection:
    """Test the read-only income view."""

    def test_projection_does_not_write(self, income, memory_store, make_agent, now):
        agent = make_agent(cash=0)
        owned(agent, memory_store, income_per_hour=100, last_income_at=now - timedelta(minutes=150))
        owned(agent, memory_store, income_per_hour=50, last_income_at=now - timedelta(minutes=20))

        view = income.projection(memory_store.get_agent(agent.id), now)

        assert view["properties"] == 2
        assert view["hourly"] == 150
        assert view["pending"] == 200
        assert view["next_payout_at"] == now + timedelta(minutes=30)
        assert memory_store.get_agent(agent.id).cash == 0

    def test_empty(self, income, make_agent, now):
        view = income.projection(make_agent(), now)
        assert view == {"properties": 0, "hourly": 0, "pending": 0, "next_payout_at": None}
