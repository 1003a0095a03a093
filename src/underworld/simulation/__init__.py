"""Autonomous play for idle agents."""

from .personas import PERSONAS, Rule, decide_action, get_persona
from .scheduler import AutonomousTickScheduler, AgentTurn, TickReport

__all__ = [
    "PERSONAS",
    "Rule",
    "decide_action",
    "get_persona",
    "AutonomousTickScheduler",
    "AgentTurn",
    "TickReport",
]
