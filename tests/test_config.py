"""Tests for rules and catalog configuration."""

from datetime import timedelta

import pytest
import yaml
from pydantic import ValidationError

from underworld.config import (
    GameRules,
    default_catalog,
    load_rules,
    save_rules,
    slugify,
)
from underworld.state.schema import InteractionType


class TestGameRules:
    """Test the policy table defaults."""

    def test_defaults(self):
        rules = GameRules()
        assert rules.regen.interval == timedelta(minutes=5)
        assert rules.cooldowns.duration_for(InteractionType.ATTACK) == timedelta(minutes=15)
        assert rules.cooldowns.duration_for(InteractionType.BUILDING) == timedelta(seconds=8)
        assert rules.jobs.bonus_per_level == 0.01
        assert rules.jobs.success_cap == 0.95
        assert rules.leveling.max_energy_per_level == 5
        assert rules.scheduler.idle_threshold == timedelta(minutes=2)
        assert rules.scheduler.batch_size == 25
        assert rules.income.period == timedelta(hours=1)

    def test_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            GameRules.model_validate({"regen": {"interval_seconds": 0}})


class TestLoadRules:
    """Test YAML overrides."""

    def test_none_gives_defaults(self):
        assert load_rules(None) == GameRules()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(yaml.safe_dump({
            "cooldowns": {"attack_seconds": 3600},
            "jobs": {"bonus_per_level": 0.05},
        }), encoding="utf-8")

        rules = load_rules(path)

        assert rules.cooldowns.attack_seconds == 3600
        assert rules.cooldowns.building_seconds == 8
        assert rules.jobs.bonus_per_level == 0.05
        assert rules.jobs.success_cap == 0.95
        assert rules.leveling.max_energy_per_level == 5

    def test_empty_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("", encoding="utf-8")
        assert load_rules(path) == GameRules()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "missing.yaml")

    def test_save_and_reload(self, tmp_path):
        rules = GameRules()
        rules.combat.stake_cap = 2500
        path = save_rules(rules, tmp_path / "out" / "rules.yaml")
        assert load_rules(path).combat.stake_cap == 2500


class TestCatalog:
    """Test the built-in tables."""

    def test_sizes(self):
        catalog = default_catalog()
        assert len(catalog.jobs) == 25
        assert len(catalog.equipment) == 8
        assert len(catalog.properties) == 7

    def test_job_ids_are_unique_slugs(self):
        jobs = default_catalog().jobs
        ids = [j.id for j in jobs]
        assert len(set(ids)) == len(ids)
        assert "collect-protection-money" in ids

    def test_first_job(self):
        job = default_catalog().get_job("collect-protection-money")
        assert (job.energy_cost, job.level_required, job.cash_min, job.cash_max) == (5, 1, 100, 300)
        assert job.base_success_rate == 0.9

    def test_lookups_are_case_insensitive(self):
        catalog = default_catalog()
        assert catalog.get_job("RUN NUMBERS").id == "run-numbers"
        assert catalog.get_equipment("tommy gun").attack_bonus == 50
        assert catalog.get_property("casino").income_per_hour == 5000
        assert catalog.get_job("nope") is None

    def test_slugify(self):
        assert slugify("Take Over Crime Family") == "take-over-crime-family"
        assert slugify("  Hit, Rival Boss! ") == "hit-rival-boss"
