"""Experience to level mapping."""

import math

from ..config import LevelPolicy


def level_for_experience(experience: int) -> int:
    """level = floor(sqrt(experience / 100)) + 1"""
    if experience <= 0:
        return 1
    # isqrt keeps large values exact: floor(sqrt(exp/100)) == isqrt(exp // 100)
    return math.isqrt(experience // 100) + 1


def experience_for_level(level: int) -> int:
    """Minimum experience for a level. Inverse of level_for_experience."""
    if level <= 1:
        return 0
    return (level - 1) ** 2 * 100


def level_progress(experience: int) -> dict:
    """Where an agent sits between its current and next level."""
    level = level_for_experience(experience)
    floor_exp = experience_for_level(level)
    next_exp = experience_for_level(level + 1)
    span = next_exp - floor_exp
    return {
        "level": level,
        "experience": experience,
        "current_level_exp": floor_exp,
        "next_level_exp": next_exp,
        "exp_to_next": next_exp - experience,
        "percent": round((experience - floor_exp) / span * 100, 1),
    }


def apply_experience(
    level: int,
    experience: int,
    gained: int,
    policy: LevelPolicy | None = None,
) -> tuple[int, int]:
    """
    Level after gaining experience, and the max energy it grants.

    Returns (new_level, max_energy_delta). Levels never go down, so a
    stored level ahead of the curve is kept and earns nothing extra.
    """
    policy = policy or LevelPolicy()
    new_level = max(level, level_for_experience(experience + gained))
    return new_level, (new_level - level) * policy.max_energy_per_level
