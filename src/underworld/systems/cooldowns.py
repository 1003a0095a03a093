"""
Cooldown ledger.

Rate-limits repeated interactions keyed by (agent, target, type). An
interaction is allowed unless a row exists whose expiry is still ahead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..config import CooldownPolicy
from ..state.schema import Cooldown, InteractionType
from ..state.store import WorldStore
from .errors import CooldownActive


@dataclass(frozen=True)
class CooldownStatus:
    """Result of a cooldown lookup."""
    allowed: bool
    remaining: timedelta = timedelta(0)
    expires_at: datetime | None = None

    @property
    def remaining_seconds(self) -> int:
        """Whole seconds left, rounded up so 0 only means allowed."""
        return max(0, math.ceil(self.remaining.total_seconds()))


class CooldownLedger:
    """Reads and upserts cooldown rows through the store."""

    def __init__(self, store: WorldStore, policy: CooldownPolicy | None = None):
        self.store = store
        self.policy = policy or CooldownPolicy()

    def can_interact(
        self,
        agent_id: str,
        target_id: str,
        type: InteractionType,
        now: datetime | None = None,
    ) -> CooldownStatus:
        """Check the exact (agent, target, type) key."""
        now = now or datetime.now()
        cooldown = self.store.get_cooldown(agent_id, target_id, type)

        if cooldown is None or cooldown.expires_at <= now:
            return CooldownStatus(allowed=True)

        return CooldownStatus(
            allowed=False,
            remaining=cooldown.expires_at - now,
            expires_at=cooldown.expires_at,
        )

    def require(
        self,
        agent_id: str,
        target_id: str,
        type: InteractionType,
        now: datetime | None = None,
    ) -> None:
        """Raise CooldownActive if the interaction is blocked."""
        status = self.can_interact(agent_id, target_id, type, now)
        if not status.allowed:
            raise CooldownActive(status.remaining_seconds, status.expires_at, target_id)

    def set_cooldown(
        self,
        agent_id: str,
        target_id: str,
        type: InteractionType,
        duration: timedelta | None = None,
        now: datetime | None = None,
    ) -> Cooldown:
        """
        Upsert the row with expires_at = now + duration.

        Without a duration the canonical one for the type is used.
        """
        now = now or datetime.now()
        duration = duration if duration is not None else self.policy.duration_for(type)
        if duration <= timedelta(0):
            raise ValueError(f"Cooldown duration must be positive, got {duration}")

        cooldown = Cooldown(
            agent_id=agent_id,
            target_id=target_id,
            type=type,
            expires_at=now + duration,
        )
        self.store.upsert_cooldown(cooldown)
        return cooldown
