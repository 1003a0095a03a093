"""
Passive property income.

Each property pays for every whole period since its anchor. The anchor
advances by the periods paid, so a partial hour carries over to the next
collection and repeated calls never double-credit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..config import IncomePolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import ActionKind, ActivityEvent, Agent, Property
from ..state.store import WorldStore
from .errors import AgentNotFound

logger = logging.getLogger(__name__)


def accrue_property(
    prop: Property,
    now: datetime,
    period: timedelta = timedelta(hours=1),
) -> tuple[int, datetime]:
    """
    Income owed by one property and its advanced anchor.

    Returns (0, unchanged anchor) when less than a whole period has passed.
    """
    periods = int((now - prop.last_income_at) // period)
    if periods < 1:
        return 0, prop.last_income_at
    return periods * prop.income_per_hour, prop.last_income_at + periods * period


@dataclass
class IncomeReport:
    """Result of one collection."""
    agent_id: str
    total: int
    by_property: dict[str, int] = field(default_factory=dict)
    cash: int = 0
    activity: ActivityEvent | None = None

    @property
    def collected(self) -> bool:
        return self.total > 0


class IncomeAccrual:
    """Collects and projects property income for stored agents."""

    def __init__(self, store: WorldStore, policy: IncomePolicy | None = None):
        self.store = store
        self.policy = policy or IncomePolicy()

    def collect(self, agent_id: str, now: datetime | None = None) -> IncomeReport:
        """
        Credit every whole period owed across the agent's properties.

        Cash is credited once with the sum. Anchors and cash commit
        together. Returns a report whose total is 0 if nothing accrued.
        """
        now = now or datetime.now()
        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)

        owed: dict[str, tuple[int, datetime]] = {}
        for prop in agent.properties:
            income, anchor = accrue_property(prop, now, self.policy.period)
            if income > 0:
                owed[prop.id] = (income, anchor)

        if not owed:
            return IncomeReport(agent_id=agent.id, total=0, cash=agent.cash)

        total = sum(income for income, _ in owed.values())

        with self.store.transaction():
            for prop_id, (_, anchor) in owed.items():
                self.store.update_property(agent.id, prop_id, last_income_at=anchor)
            updated = self.store.increment(agent.id, cash=total)

        activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=ActionKind.COLLECT,
            result_text=f"Collected income from {len(owed)} propert{'y' if len(owed) == 1 else 'ies'}",
            rewards={"cash": f"+${total:,}"},
            created_at=now,
        )
        get_event_bus().emit(
            EventType.INCOME_COLLECTED,
            agent_id=agent.id,
            total=total,
            properties=len(owed),
        )
        publish_activity(activity, agent_id=agent.id)
        logger.debug(f"Agent {agent.id} collected ${total} from {len(owed)} properties")

        return IncomeReport(
            agent_id=agent.id,
            total=total,
            by_property={prop_id: income for prop_id, (income, _) in owed.items()},
            cash=updated.cash,
            activity=activity,
        )

    def projection(self, agent: Agent, now: datetime | None = None) -> dict:
        """
        Read-only income view: pending amount, hourly rate, next payout.

        Recomputed from stored anchors; nothing is written.
        """
        now = now or datetime.now()
        pending = 0
        next_payout: datetime | None = None

        for prop in agent.properties:
            income, anchor = accrue_property(prop, now, self.policy.period)
            pending += income
            due = anchor + self.policy.period
            if next_payout is None or due < next_payout:
                next_payout = due

        return {
            "properties": len(agent.properties),
            "hourly": sum(p.income_per_hour for p in agent.properties),
            "pending": pending,
            "next_payout_at": next_payout,
        }
