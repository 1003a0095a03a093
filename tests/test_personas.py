"""Tests for persona decision tables."""

import pytest

from underworld.state.schema import ActionKind, Agent
from underworld.simulation.personas import PERSONAS, decide_action, get_persona


def agent(persona="default", **fields):
    return Agent(username="x", persona=persona, **fields)


class TestRest:
    """Test the low-resource override."""

    @pytest.mark.parametrize("fields", [{"energy": 14}, {"health": 29}])
    def test_low_resources_rest(self, fields):
        for persona in PERSONAS:
            assert decide_action(agent(persona, **fields), 0.0) == ActionKind.REST

    def test_thresholds_are_strict(self):
        assert decide_action(agent(energy=15, health=30), 0.0) == ActionKind.WORK


class TestPersonaTables:
    """Test each persona's rows in order."""

    @pytest.mark.parametrize("persona,roll,fields,expected", [
        # ruthless: 60% fight (health >= 40) else work
        ("ruthless", 0.59, {}, ActionKind.FIGHT),
        ("ruthless", 0.60, {}, ActionKind.WORK),
        ("ruthless", 0.10, {"health": 39}, ActionKind.WORK),
        # honorable: 40% join (no family), else 70% work, else fight
        ("honorable", 0.39, {}, ActionKind.JOIN_FAMILY),
        ("honorable", 0.39, {"family_id": "f1"}, ActionKind.WORK),
        ("honorable", 0.69, {}, ActionKind.WORK),
        ("honorable", 0.70, {}, ActionKind.FIGHT),
        # chaotic: 40% fight, else 70% work, else join
        ("chaotic", 0.39, {}, ActionKind.FIGHT),
        ("chaotic", 0.40, {}, ActionKind.WORK),
        ("chaotic", 0.70, {}, ActionKind.JOIN_FAMILY),
        # silent: 50% work, else 80% fight (health >= 50), else work
        ("silent", 0.49, {}, ActionKind.WORK),
        ("silent", 0.50, {}, ActionKind.FIGHT),
        ("silent", 0.50, {"health": 49}, ActionKind.WORK),
        ("silent", 0.80, {}, ActionKind.WORK),
        # default: 50% work, else 75% fight (health >= 50), else 90% join (no family), else work
        ("default", 0.49, {}, ActionKind.WORK),
        ("default", 0.74, {}, ActionKind.FIGHT),
        ("default", 0.74, {"health": 49}, ActionKind.JOIN_FAMILY),
        ("default", 0.89, {}, ActionKind.JOIN_FAMILY),
        ("default", 0.89, {"family_id": "f1"}, ActionKind.WORK),
        ("default", 0.90, {}, ActionKind.WORK),
    ])
    def test_table(self, persona, roll, fields, expected):
        assert decide_action(agent(persona, **fields), roll) == expected

    def test_unknown_persona_uses_default(self):
        assert get_persona("mysterious") is PERSONAS["default"]
        assert decide_action(agent("mysterious"), 0.74) == ActionKind.FIGHT

    def test_persona_tag_is_case_insensitive(self):
        assert get_persona("Ruthless") is PERSONAS["ruthless"]

    def test_every_persona_has_fallback(self):
        for table in PERSONAS.values():
            assert isinstance(table["fallback"], ActionKind)
