"""
Crime families.

Membership lives on the agent. A family's attack/defense bonus feeds every
member's power; its respect is always recomputed from the members.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from ..config import FamilyPolicy
from ..state.event_bus import EventType, get_event_bus, publish_activity
from ..state.schema import ActionKind, ActivityEvent, Agent, Family
from ..state.store import WorldStore
from .errors import (
    ActionRejected,
    AgentNotFound,
    AlreadyInFamily,
    FamilyFull,
    InvalidTarget,
)

logger = logging.getLogger(__name__)


class FamilySystem:
    """
    Create, join and leave families.

    Randomness is only used to pick a family when an agent joins without
    naming one.
    """

    def __init__(
        self,
        store: WorldStore,
        policy: FamilyPolicy | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.policy = policy or FamilyPolicy()
        self.rng = rng or random.Random()

    def _agent(self, agent_id: str) -> Agent:
        agent = self.store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)
        return agent

    def _family(self, family_id: str) -> Family:
        family = self.store.get_family(family_id)
        if family is None:
            raise InvalidTarget(f"Family not found: {family_id}", family_id=family_id)
        return family

    def has_room(self, family_id: str) -> bool:
        return len(self.store.family_members(family_id)) < self.policy.max_members

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def create(
        self,
        founder_id: str,
        name: str,
        description: str = "",
        now: datetime | None = None,
    ) -> Family:
        """Found a family with the founder as boss."""
        now = now or datetime.now()
        name = name.strip()

        if not self.policy.name_min_length <= len(name) <= self.policy.name_max_length:
            raise ActionRejected(
                f"Family name must be {self.policy.name_min_length}-"
                f"{self.policy.name_max_length} characters",
                name=name,
            )
        if any(f.name.lower() == name.lower() for f in self.store.list_families()):
            raise ActionRejected(f"Family name already taken: {name}", name=name)

        founder = self._agent(founder_id)
        if founder.family_id:
            raise AlreadyInFamily(founder.family_id)

        family = Family(
            name=name,
            boss_id=founder.id,
            description=description,
            attack_bonus=self.policy.attack_bonus,
            defense_bonus=self.policy.defense_bonus,
            created_at=now,
        )

        with self.store.transaction():
            self.store.save_family(family)
            self.store.update(founder.id, family_id=family.id, family_joined_at=now)

        activity = ActivityEvent(
            agent_display_name=founder.name,
            action_kind=ActionKind.CREATE_FAMILY,
            result_text=f"Founded the {family.name} family",
            created_at=now,
        )
        get_event_bus().emit(
            EventType.FAMILY_CREATED,
            agent_id=founder.id,
            family_id=family.id,
            name=family.name,
        )
        publish_activity(activity, agent_id=founder.id)
        return family

    def join(
        self,
        agent_id: str,
        family_id: str | None = None,
        now: datetime | None = None,
    ) -> Family:
        """
        Join a family.

        Without ``family_id`` a family with room is picked at random.

        Raises:
            AlreadyInFamily, FamilyFull, InvalidTarget, AgentNotFound
        """
        now = now or datetime.now()
        agent = self._agent(agent_id)
        if agent.family_id:
            raise AlreadyInFamily(agent.family_id)

        if family_id is not None:
            family = self._family(family_id)
            if not self.has_room(family.id):
                raise FamilyFull(f"{family.name} is full", family_id=family.id)
        else:
            open_families = [f for f in self.store.list_families() if self.has_room(f.id)]
            if not open_families:
                raise FamilyFull("No family has room")
            family = self.rng.choice(open_families)

        self.store.update(agent.id, family_id=family.id, family_joined_at=now)

        activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=ActionKind.JOIN_FAMILY,
            result_text=f"Joined the {family.name} family",
            created_at=now,
        )
        get_event_bus().emit(
            EventType.FAMILY_JOINED,
            agent_id=agent.id,
            family_id=family.id,
            name=family.name,
        )
        publish_activity(activity, agent_id=agent.id)
        return family

    def leave(self, agent_id: str, now: datetime | None = None) -> Family | None:
        """
        Leave the current family.

        A departing boss hands over to the longest-standing member; the
        last member out dissolves the family. Returns the family as it
        stands afterwards, or None if it was dissolved.
        """
        now = now or datetime.now()
        agent = self._agent(agent_id)
        if not agent.family_id:
            raise InvalidTarget("Not in a family")
        family = self._family(agent.family_id)

        with self.store.transaction():
            self.store.update(agent.id, family_id=None, family_joined_at=None)
            remaining = self.store.family_members(family.id)
            if not remaining:
                self.store.delete_family(family.id)
                result = None
            else:
                if family.boss_id == agent.id:
                    family.boss_id = remaining[0].id
                    logger.info(f"Family {family.id} passed to {remaining[0].id}")
                self.store.save_family(family)
                result = family

        activity = ActivityEvent(
            agent_display_name=agent.name,
            action_kind=ActionKind.LEAVE_FAMILY,
            result_text=f"Left the {family.name} family",
            created_at=now,
        )
        get_event_bus().emit(
            EventType.FAMILY_LEFT,
            agent_id=agent.id,
            family_id=family.id,
            dissolved=result is None,
        )
        publish_activity(activity, agent_id=agent.id)
        return result

    # -------------------------------------------------------------------------
    # Read model
    # -------------------------------------------------------------------------

    def standing(self, family_id: str) -> dict:
        """Aggregate view of a family, recomputed from its members."""
        family = self._family(family_id)
        members = self.store.family_members(family.id)
        return {
            "id": family.id,
            "name": family.name,
            "boss_id": family.boss_id,
            "members": len(members),
            "max_members": self.policy.max_members,
            "respect": sum(m.respect for m in members),
            "treasury": family.treasury,
            "attack_bonus": family.attack_bonus,
            "defense_bonus": family.defense_bonus,
        }
