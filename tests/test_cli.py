"""Tests for the operator CLI."""

import json

from underworld.interface.cli import build_parser, main


class TestParser:
    """Test argument parsing."""

    def test_global_options(self):
        args = build_parser().parse_args(["--world", "w.json", "--seed", "3", "tick", "-n", "2"])
        assert args.world == "w.json"
        assert args.seed == 3
        assert args.command == "tick"
        assert args.rounds == 2

    def test_work_job_optional(self):
        args = build_parser().parse_args(["work", "vito"])
        assert args.job is None


class TestMain:
    """Test commands end to end against a world file."""

    def test_seed_then_tick(self, tmp_path):
        world = tmp_path / "world.json"
        assert main(["--world", str(world), "--seed", "1", "seed"]) == 0
        data = json.loads(world.read_text(encoding="utf-8"))
        assert len(data["agents"]) == 8
        assert len(data["families"]) == 2

        assert main(["--world", str(world), "--seed", "1", "tick"]) == 0
        data = json.loads(world.read_text(encoding="utf-8"))
        assert all(a["last_active"] for a in data["agents"])

    def test_status_and_work(self, tmp_path):
        world = str(tmp_path / "world.json")
        main(["--world", world, "seed"])
        assert main(["--world", world, "status", "vito"]) == 0
        assert main(["--world", world, "targets", "vito"]) == 0
        assert main(["--world", world, "visit", "vito", "Black Market"]) == 0
        assert main(["--world", world, "work", "vito"]) == 0
        assert main(["--world", world, "work", "vito", "collect-protection-money"]) == 0

    def test_rejection_exit_code(self, tmp_path):
        world = str(tmp_path / "world.json")
        main(["--world", world, "seed"])
        assert main(["--world", world, "attack", "vito", "vito"]) == 1
        assert main(["--world", world, "status", "nobody"]) == 1

    def test_missing_rules_file(self, tmp_path):
        assert main(["--world", str(tmp_path / "w.json"), "--rules", str(tmp_path / "r.yaml"), "seed"]) == 2
