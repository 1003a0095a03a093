"""Tests for the cooldown ledger."""

from datetime import timedelta

import pytest

from underworld.state.schema import InteractionType
from underworld.systems.errors import CooldownActive


class TestCanInteract:
    """Test cooldown checks."""

    def test_no_row_allows(self, ledger, now):
        status = ledger.can_interact("a", "b", InteractionType.ATTACK, now)
        assert status.allowed
        assert status.remaining_seconds == 0

    def test_blocks_until_expiry(self, ledger, now):
        """Blocked for every check < T+D, allowed at and after T+D."""
        duration = timedelta(minutes=15)
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, duration, now=now)

        assert not ledger.can_interact("a", "b", InteractionType.ATTACK, now).allowed
        almost = now + duration - timedelta(microseconds=1)
        assert not ledger.can_interact("a", "b", InteractionType.ATTACK, almost).allowed
        assert ledger.can_interact("a", "b", InteractionType.ATTACK, now + duration).allowed
        assert ledger.can_interact("a", "b", InteractionType.ATTACK, now + 2 * duration).allowed

    def test_reports_remaining(self, ledger, now):
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(seconds=90), now=now)
        status = ledger.can_interact("a", "b", InteractionType.ATTACK, now + timedelta(seconds=30))
        assert status.remaining == timedelta(seconds=60)
        assert status.remaining_seconds == 60
        assert status.expires_at == now + timedelta(seconds=90)

    def test_remaining_rounds_up(self, ledger, now):
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(seconds=10), now=now)
        status = ledger.can_interact("a", "b", InteractionType.ATTACK, now + timedelta(seconds=9.5))
        assert status.remaining_seconds == 1

    def test_key_is_exact_triple(self, ledger, now):
        """Other targets, other actors and other types are unaffected."""
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, now=now)
        assert ledger.can_interact("a", "c", InteractionType.ATTACK, now).allowed
        assert ledger.can_interact("b", "a", InteractionType.ATTACK, now).allowed
        assert ledger.can_interact("a", "b", InteractionType.BUILDING, now).allowed


class TestSetCooldown:
    """Test cooldown upserts."""

    def test_default_durations(self, ledger, now):
        attack = ledger.set_cooldown("a", "b", InteractionType.ATTACK, now=now)
        building = ledger.set_cooldown("a", "vault", InteractionType.BUILDING, now=now)
        assert attack.expires_at == now + timedelta(minutes=15)
        assert building.expires_at == now + timedelta(seconds=8)

    def test_upsert_replaces(self, ledger, memory_store, now):
        """Setting again overwrites the same row."""
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(hours=1), now=now)
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(seconds=5), now=now)
        assert len(memory_store.cooldowns) == 1
        assert ledger.can_interact("a", "b", InteractionType.ATTACK, now + timedelta(seconds=5)).allowed

    def test_rejects_non_positive_duration(self, ledger, now):
        with pytest.raises(ValueError):
            ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(0), now=now)


class TestRequire:
    """Test the raising variant."""

    def test_raises_with_figures(self, ledger, now):
        ledger.set_cooldown("a", "b", InteractionType.ATTACK, timedelta(seconds=120), now=now)
        with pytest.raises(CooldownActive) as exc:
            ledger.require("a", "b", InteractionType.ATTACK, now + timedelta(seconds=20))
        assert exc.value.remaining_seconds == 100
        assert exc.value.to_dict()["reason"] == "cooldown"

    def test_passes_when_clear(self, ledger, now):
        ledger.require("a", "b", InteractionType.ATTACK, now)
