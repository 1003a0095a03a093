"""
Rejections raised before any state is touched.

Each carries the figures a caller needs to explain the refusal
(required vs available, seconds left on a cooldown).
"""

from datetime import datetime


class ActionRejected(Exception):
    """An action was refused. Nothing was written."""

    reason = "rejected"

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        """JSON-ready payload for callers."""
        payload = {"error": self.message, "reason": self.reason}
        for key, value in self.details.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class AgentNotFound(ActionRejected):
    reason = "not_found"

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}", agent_id=agent_id)


class InvalidTarget(ActionRejected):
    """Self-targeting, same-family targeting and similar."""
    reason = "invalid_target"


class CooldownActive(ActionRejected):
    reason = "cooldown"

    def __init__(self, remaining_seconds: int, expires_at: datetime, target_id: str = ""):
        self.remaining_seconds = remaining_seconds
        self.expires_at = expires_at
        super().__init__(
            f"On cooldown for another {remaining_seconds}s",
            remaining_seconds=remaining_seconds,
            expires_at=expires_at,
            target_id=target_id,
        )


class InsufficientEnergy(ActionRejected):
    reason = "energy"

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Not enough energy: need {required}, have {available}",
            required=required,
            available=available,
        )


class InsufficientCash(ActionRejected):
    reason = "cash"

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Not enough cash: need ${required:,}, have ${available:,}",
            required=required,
            available=available,
        )


class LevelTooLow(ActionRejected):
    reason = "level"

    def __init__(self, required: int, current: int):
        self.required = required
        self.current = current
        super().__init__(
            f"Requires level {required} (currently {current})",
            required=required,
            current=current,
        )


class HealthTooLow(ActionRejected):
    reason = "health"

    def __init__(self, required: int, current: int):
        self.required = required
        self.current = current
        super().__init__(
            f"Health too low: need {required}, have {current}",
            required=required,
            current=current,
        )


class UnknownCatalogEntry(ActionRejected):
    reason = "unknown_entry"

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind}: {key}", kind=kind, key=key)


class AlreadyInFamily(ActionRejected):
    reason = "already_in_family"

    def __init__(self, family_id: str):
        self.family_id = family_id
        super().__init__(
            "Already in a family. Leave first to join another.",
            family_id=family_id,
        )


class FamilyFull(ActionRejected):
    reason = "family_full"
