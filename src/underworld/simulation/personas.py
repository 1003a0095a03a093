"""Persona decision tables for autonomous agents."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import SchedulerPolicy
from ..state.schema import ActionKind, Agent


@dataclass(frozen=True)
class Rule:
    """
    One row of a persona table.

    Fires when the shared roll is below ``threshold`` and the guard holds.
    A rule whose guard fails is skipped, so later rows still get a chance.
    """
    action: ActionKind
    threshold: float
    min_health: int = 0
    requires_no_family: bool = False

    def applies(self, agent: Agent, roll: float) -> bool:
        if agent.health < self.min_health:
            return False
        if self.requires_no_family and agent.family_id:
            return False
        return roll < self.threshold


PERSONAS = {
    "ruthless": {
        "name": "Ruthless",
        "rules": (
            Rule(ActionKind.FIGHT, 0.60, min_health=40),
        ),
        "fallback": ActionKind.WORK,
    },
    "honorable": {
        "name": "Honorable",
        "rules": (
            Rule(ActionKind.JOIN_FAMILY, 0.40, requires_no_family=True),
            Rule(ActionKind.WORK, 0.70),
        ),
        "fallback": ActionKind.FIGHT,
    },
    "chaotic": {
        "name": "Chaotic",
        "rules": (
            Rule(ActionKind.FIGHT, 0.40),
            Rule(ActionKind.WORK, 0.70),
        ),
        "fallback": ActionKind.JOIN_FAMILY,
    },
    "silent": {
        "name": "Silent",
        "rules": (
            Rule(ActionKind.WORK, 0.50),
            Rule(ActionKind.FIGHT, 0.80, min_health=50),
        ),
        "fallback": ActionKind.WORK,
    },
    "default": {
        "name": "Default",
        "rules": (
            Rule(ActionKind.WORK, 0.50),
            Rule(ActionKind.FIGHT, 0.75, min_health=50),
            Rule(ActionKind.JOIN_FAMILY, 0.90, requires_no_family=True),
        ),
        "fallback": ActionKind.WORK,
    },
}


def get_persona(name: str | None) -> dict:
    """Persona table for a tag, falling back to the default persona."""
    return PERSONAS.get((name or "default").lower(), PERSONAS["default"])


def needs_rest(agent: Agent, policy: SchedulerPolicy) -> bool:
    return agent.energy < policy.low_energy or agent.health < policy.low_health


def decide_action(
    agent: Agent,
    roll: float,
    policy: SchedulerPolicy | None = None,
) -> ActionKind:
    """
    Pick an action for an idle agent from one uniform roll in [0, 1).

    Low energy or health means rest regardless of persona.
    """
    policy = policy or SchedulerPolicy()
    if needs_rest(agent, policy):
        return ActionKind.REST

    persona = get_persona(agent.persona)
    for rule in persona["rules"]:
        if rule.applies(agent, roll):
            return rule.action
    return persona["fallback"]
