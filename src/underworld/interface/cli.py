"""
Command-line interface for the underworld.

Operator commands over a JSON world file. Each command loads the world,
runs one operation and saves it back.
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from ..config import load_rules
from ..state import WorldManager, EventType, get_event_bus
from ..systems.errors import ActionRejected
from .renderer import THEME, console, show_activity, show_error, show_status, show_targets, show_tick

logger = logging.getLogger(__name__)


# (username, display name, persona)
DEMO_AGENTS = [
    ("vito", "Vito Scaletta", "ruthless"),
    ("sal", "Sal Marino", "honorable"),
    ("nicky", "Nicky Two-Times", "chaotic"),
    ("ghost", "The Ghost", "silent"),
    ("tony", "Tony Bricks", "default"),
    ("lucia", "Lucia Valenti", "honorable"),
    ("frankie", "Frankie Knuckles", "ruthless"),
    ("rosa", "Rosa Nera", "default"),
]

DEMO_FAMILIES = [
    ("vito", "Scaletta Family", "Old money, older grudges."),
    ("lucia", "Valenti Outfit", "Quiet until they aren't."),
]


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_seed(manager: WorldManager, args) -> int:
    created = 0
    for username, display_name, persona in DEMO_AGENTS:
        if manager.store.find_agent(username):
            continue
        manager.create_agent(username, display_name=display_name, persona=persona)
        created += 1

    existing = {f.name for f in manager.store.list_families()}
    for boss, name, description in DEMO_FAMILIES:
        if name in existing:
            continue
        agent = manager.store.find_agent(boss)
        if agent and not agent.family_id:
            manager.families.create(agent.id, name, description)

    console.print(f"Seeded {created} agents ({len(manager.store.list_agents())} total)")
    return 0


def cmd_tick(manager: WorldManager, args) -> int:
    for _ in range(args.rounds):
        show_tick(manager.scheduler.tick())
    return 0


def cmd_regen(manager: WorldManager, args) -> int:
    updated = manager.clock.regenerate_all()
    console.print(f"Regenerated energy for {updated} agents")
    return 0


def cmd_collect(manager: WorldManager, args) -> int:
    agent = manager.require_agent(args.agent)
    report = manager.income.collect(agent.id)
    if not report.collected:
        console.print(f"[{THEME['dim']}]Nothing to collect yet[/{THEME['dim']}]")
    return 0


def cmd_status(manager: WorldManager, args) -> int:
    show_status(manager.status(args.agent))
    return 0


def cmd_attack(manager: WorldManager, args) -> int:
    attacker = manager.require_agent(args.attacker)
    defender = manager.require_agent(args.defender)
    manager.combat.attack(attacker.id, defender.id)
    return 0


def cmd_targets(manager: WorldManager, args) -> int:
    agent = manager.require_agent(args.agent)
    show_targets(manager.combat.targets(agent.id, limit=args.limit))
    return 0


def cmd_work(manager: WorldManager, args) -> int:
    agent = manager.require_agent(args.agent)
    if args.job is None:
        for job in manager.jobs.available_jobs(agent):
            console.print(f"{job.id:<28} {job.energy_cost:>3} energy  ${job.cash_min:,}-${job.cash_max:,}")
        return 0
    manager.jobs.execute(agent.id, args.job)
    return 0


def cmd_buy(manager: WorldManager, args) -> int:
    agent = manager.require_agent(args.agent)
    if manager.catalog.get_property(args.item) is not None:
        manager.market.purchase_property(agent.id, args.item)
        return 0

    item = manager.market.purchase_equipment(agent.id, args.item)
    if args.equip:
        manager.market.equip(agent.id, item.id)
    return 0


def cmd_visit(manager: WorldManager, args) -> int:
    agent = manager.require_agent(args.agent)
    manager.buildings.interact(agent.id, args.building)
    return 0


COMMANDS = {
    "seed": cmd_seed,
    "tick": cmd_tick,
    "regen": cmd_regen,
    "collect": cmd_collect,
    "status": cmd_status,
    "attack": cmd_attack,
    "targets": cmd_targets,
    "work": cmd_work,
    "buy": cmd_buy,
    "visit": cmd_visit,
}


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Underworld - autonomous crime world simulation")
    parser.add_argument(
        "--world", "-w",
        default="world.json",
        help="World file (created on first save)"
    )
    parser.add_argument(
        "--rules", "-r",
        default=None,
        help="YAML file overriding game rules"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed", help="Create demo agents and families")

    tick = sub.add_parser("tick", help="Run the autonomous scheduler")
    tick.add_argument("--rounds", "-n", type=int, default=1)

    sub.add_parser("regen", help="Energy sweep over all agents")

    collect = sub.add_parser("collect", help="Collect property income")
    collect.add_argument("agent")

    status = sub.add_parser("status", help="Show an agent")
    status.add_argument("agent")

    attack = sub.add_parser("attack", help="Attack another agent")
    attack.add_argument("attacker")
    attack.add_argument("defender")

    targets = sub.add_parser("targets", help="List attackable opponents, best loot first")
    targets.add_argument("agent")
    targets.add_argument("--limit", "-n", type=int, default=20)

    work = sub.add_parser("work", help="Run a job (lists jobs without one)")
    work.add_argument("agent")
    work.add_argument("job", nargs="?", default=None)

    buy = sub.add_parser("buy", help="Buy equipment or a property")
    buy.add_argument("agent")
    buy.add_argument("item")
    buy.add_argument("--equip", action="store_true", help="Equip after buying")

    visit = sub.add_parser("visit", help="Visit a town building")
    visit.add_argument("agent")
    visit.add_argument("building")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    try:
        rules = load_rules(args.rules)
    except FileNotFoundError:
        show_error(f"Rules file not found: {args.rules}")
        return 2

    rng = random.Random(args.seed)
    manager = WorldManager(Path(args.world), rules=rules, rng=rng)
    get_event_bus().on(EventType.ACTIVITY, show_activity)

    try:
        code = COMMANDS[args.command](manager, args)
    except ActionRejected as e:
        show_error(e.message)
        return 1

    manager.save()
    return code


if __name__ == "__main__":
    sys.exit(main())
