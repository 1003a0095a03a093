"""
Marketplace: equipment and income properties bought with cash.
"""

from __future__ import annotations

from datetime import datetime

from ..config import Catalog, MarketPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import ActionKind, ActivityEvent, Agent, Equipment, Property
from ..state.store import WorldStore
from .errors import (
    ActionRejected,
    AgentNotFound,
    InsufficientCash,
    InvalidTarget,
    UnknownCatalogEntry,
)


class MarketSystem:
    """Purchases and gear management."""

    def __init__(
        self,
        store: WorldStore,
        catalog: Catalog,
        policy: MarketPolicy | None = None,
    ):
        self.store = store
        self.catalog = catalog
        self.policy = policy or MarketPolicy()

    def _agent(self, agent_id: str) -> Agent:
        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)
        return agent

    def _announce(self, agent: Agent, kind: str, name: str, price: int, now: datetime) -> None:
        activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=ActionKind.PURCHASE,
            result_text=f"Bought {name}",
            rewards={"cash": f"-${price:,}"},
            created_at=now,
        )
        get_event_bus().emit(
            EventType.ITEM_PURCHASED,
            agent_id=agent.id,
            kind=kind,
            name=name,
            price=price,
        )
        publish_activity(activity, agent_id=agent.id)

    def purchase_equipment(
        self,
        agent_id: str,
        name: str,
        now: datetime | None = None,
    ) -> Equipment:
        """Buy a catalog item. It arrives unequipped."""
        now = now or datetime.now()
        template = self.catalog.get_equipment(name)
        if template is None:
            raise UnknownCatalogEntry("equipment", name)

        agent = self._agent(agent_id)
        if agent.cash < template.price:
            raise InsufficientCash(template.price, agent.cash)

        item = Equipment(
            name=template.name,
            category=template.category,
            rarity=template.rarity,
            attack_bonus=template.attack_bonus,
            defense_bonus=template.defense_bonus,
            job_bonus=template.job_bonus,
        )
        with self.store.transaction():
            self.store.increment(agent.id, cash=-template.price)
            self.store.add_equipment(agent.id, item)

        self._announce(agent, "equipment", template.name, template.price, now)
        return item

    def equip(self, agent_id: str, equipment_id: str, equipped: bool = True) -> Equipment:
        """
        Toggle an owned item's equipped flag.

        At most ``equip_limit`` items can be equipped at once.
        """
        agent = self._agent(agent_id)
        item = next((e for e in agent.equipment if e.id == equipment_id), None)
        if item is None:
            raise InvalidTarget(f"Equipment not owned: {equipment_id}", equipment_id=equipment_id)

        if equipped and not item.equipped and len(agent.equipped) >= self.policy.equip_limit:
            raise ActionRejected(
                f"Can only equip {self.policy.equip_limit} items at once",
                limit=self.policy.equip_limit,
            )
        return self.store.update_equipment(agent.id, equipment_id, equipped=equipped)

    def purchase_property(
        self,
        agent_id: str,
        name: str,
        now: datetime | None = None,
    ) -> Property:
        """Buy an income property. Income starts accruing from now."""
        now = now or datetime.now()
        template = self.catalog.get_property(name)
        if template is None:
            raise UnknownCatalogEntry("property", name)

        agent = self._agent(agent_id)
        if agent.cash < template.purchase_price:
            raise InsufficientCash(template.purchase_price, agent.cash)

        prop = Property(
            name=template.name,
            category=template.category,
            city=template.city,
            purchase_price=template.purchase_price,
            income_per_hour=template.income_per_hour,
            last_income_at=now,
        )
        with self.store.transaction():
            self.store.increment(agent.id, cash=-template.purchase_price)
            self.store.add_property(agent.id, prop)

        self._announce(agent, "property", template.name, template.purchase_price, now)
        return prop
