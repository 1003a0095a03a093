"""
Power aggregation.

Pure function: base stats plus equipped gear, crew and family bonuses.
"""

from dataclasses import dataclass

from ..state.schema import Agent, Family


@dataclass(frozen=True)
class Power:
    """Aggregated combat stats."""
    attack: int
    defense: int

    @property
    def total(self) -> int:
        return self.attack + self.defense


def calculate_total_power(agent: Agent, family: Family | None = None) -> Power:
    """
    Combine an agent's base stats with every bonus source.

    Unequipped equipment contributes nothing. Crew always contributes.
    ``family`` is the agent's family row, resolved by the caller.
    """
    attack = agent.base_attack
    defense = agent.base_defense

    for item in agent.equipment:
        if item.equipped:
            attack += item.attack_bonus
            defense += item.defense_bonus

    for member in agent.crew:
        attack += member.attack_bonus
        defense += member.defense_bonus

    if family is not None:
        attack += family.attack_bonus
        defense += family.defense_bonus

    return Power(attack=attack, defense=defense)
