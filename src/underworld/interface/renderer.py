"""
Display helpers for the operator CLI.

Rich tables for agent status, tick reports and the activity feed.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..simulation.scheduler import TickReport
from ..state.event_bus import GameEvent
from ..systems.combat import AttackTarget
from ..systems.views import AgentStatus


# Shared console instance
console = Console()

THEME = {
    "primary": "steel_blue",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "good": "green",
    "dim": "dim",
}


def show_error(message: str) -> None:
    console.print(f"[{THEME['danger']}]{message}[/{THEME['danger']}]")


def show_activity(event: GameEvent) -> None:
    """Print one activity feed entry."""
    data = event.data
    line = f"[bold]{data.get('agent_display_name', '?')}[/bold] {data.get('result_text', '')}"
    rewards = data.get("rewards") or {}
    if rewards:
        parts = ", ".join(f"{k}: {v}" for k, v in rewards.items())
        line += f" [{THEME['dim']}]({parts})[/{THEME['dim']}]"
    console.print(f"[{THEME['secondary']}]{data.get('action_kind', ''):>12}[/{THEME['secondary']}]  {line}")


def bar(current: int, maximum: int, width: int = 20) -> str:
    filled = 0 if maximum <= 0 else round(width * current / maximum)
    return "█" * filled + "░" * (width - filled)


def show_status(status: AgentStatus) -> None:
    """Full status panel for one agent."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])

    progress = status.progress
    table.add_row("Persona", status.persona)
    table.add_row(
        "Level",
        f"{status.level} ({progress.get('percent', 0)}% to {progress.get('level', status.level) + 1})",
    )
    table.add_row("Cash", f"${status.cash:,}")
    table.add_row("Respect", str(status.respect))
    table.add_row("Energy", f"{bar(status.energy, status.max_energy)} {status.energy}/{status.max_energy}")
    table.add_row("Health", f"{bar(status.health, status.max_health)} {status.health}/{status.max_health}")
    table.add_row("Power", f"{status.power} (atk {status.attack} / def {status.defense})")
    table.add_row("Family", status.family_name or "-")

    income = status.income
    if income.get("properties"):
        table.add_row(
            "Income",
            f"${income['hourly']:,}/h from {income['properties']} properties, ${income['pending']:,} pending",
        )
    if status.attack_cooldowns:
        table.add_row(
            "Cooldowns",
            ", ".join(f"{target}: {secs}s" for target, secs in status.attack_cooldowns.items()),
        )

    console.print(Panel(table, title=f"[bold {THEME['primary']}]{status.name}[/bold {THEME['primary']}]"))


def show_tick(report: TickReport) -> None:
    """Summary table for one scheduler sweep."""
    table = Table(title=f"Tick @ {report.started_at:%H:%M:%S}")
    table.add_column("Agent")
    table.add_column("Action", style=THEME["primary"])
    table.add_column("Result")
    table.add_column("Rewards", style=THEME["good"])

    for turn in report.turns:
        style = THEME["warning"] if turn.rejected else None
        table.add_row(
            turn.agent_name,
            turn.action.value,
            turn.result_text,
            ", ".join(f"{k}: {v}" for k, v in turn.rewards.items()),
            style=style,
        )

    console.print(table)
    summary = f"{report.processed}/{report.selected} agents processed"
    if report.failed:
        summary += f", [{THEME['danger']}]{len(report.failed)} failed[/{THEME['danger']}]"
    console.print(f"[{THEME['dim']}]{summary}[/{THEME['dim']}]")


def show_targets(targets: list[AttackTarget]) -> None:
    """Attackable opponents, best loot per power first."""
    if not targets:
        console.print(f"[{THEME['dim']}]No one to attack right now[/{THEME['dim']}]")
        return

    table = Table(title="Targets")
    table.add_column("Agent")
    table.add_column("Lvl", justify="right")
    table.add_column("Family", style=THEME["dim"])
    table.add_column("Power", justify="right", style=THEME["primary"])
    table.add_column("Loot", justify="right", style=THEME["good"])
    table.add_column("Loot/Power", justify="right")

    for target in targets:
        table.add_row(
            target.name,
            str(target.level),
            target.family_name or "-",
            str(target.power),
            f"${target.estimated_loot:,}",
            f"{target.profitability:.2f}",
        )
    console.print(table)
