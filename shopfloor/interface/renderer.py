"""
Display helpers for the terminal runner.

Handles theming, panels and the profile/leaderboard tables.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.box import ROUNDED
from prompt_toolkit.styles import Style as PTStyle

from ..state import ROLE_LABELS, Profile, RegistryEntry
from ..state.schema import Option

# Shared console instance
console = Console()

THEME = {
    "primary": "steel_blue",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "good": "green4",
    "accent": "cyan",
    "dim": "dim",
}

pt_style = PTStyle.from_dict({
    "prompt": "#5f87af bold",
})


def show_banner(backend: str) -> None:
    console.print(Panel(
        f"[bold]SHOPFLOOR TRAINER[/bold]\n[{THEME['dim']}]content: {backend}[/{THEME['dim']}]",
        border_style=THEME["primary"],
        box=ROUNDED,
    ))


def show_help(commands: dict[str, str]) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    for name, description in commands.items():
        table.add_row(f"[{THEME['accent']}]{name}[/{THEME['accent']}]", description)
    console.print(table)


def show_profile(profile: Profile) -> None:
    table = Table(show_header=False, box=ROUNDED, border_style=THEME["secondary"])
    table.add_row("Name", profile.name)
    table.add_row("Store", profile.store or "-")
    table.add_row("Level", ROLE_LABELS[profile.level])
    table.add_row("XP", str(profile.xp))
    table.add_row("Modules", str(profile.modules_completed))
    table.add_row("Achievements", ", ".join(profile.achievements) or "-")
    console.print(table)


def show_leaderboard(entries: list[RegistryEntry]) -> None:
    table = Table(title="Leaderboard", box=ROUNDED, border_style=THEME["secondary"])
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Level")
    table.add_column("XP", justify="right")
    table.add_column("Dialogues", justify="right")
    for rank, entry in enumerate(entries, 1):
        table.add_row(str(rank), entry.name, entry.level, str(entry.xp), str(len(entry.last_simulator_session)))
    console.print(table)


def show_options(title: str, options: tuple[Option, ...], footer: str = "") -> None:
    lines = [f"[{THEME['accent']}]{i}.[/{THEME['accent']}] {opt.text}" for i, opt in enumerate(options, 1)]
    if footer:
        lines.append(f"[{THEME['dim']}]{footer}[/{THEME['dim']}]")
    console.print(Panel("\n".join(lines), title=title, border_style=THEME["primary"], box=ROUNDED))


def show_feedback(delta: int | None, feedback: str | None) -> None:
    if delta is None:
        return
    color = THEME["good"] if delta > 0 else THEME["danger"]
    console.print(f"[{color}]{delta:+d}[/{color}] {feedback or ''}")


def show_customer(text: str) -> None:
    console.print(f"[{THEME['warning']}]Customer:[/{THEME['warning']}] {text}")


def show_result(score: int | None, reason: str | None) -> None:
    if score is None:
        console.print(f"[{THEME['dim']}]Session closed without a score.[/{THEME['dim']}]")
        return
    color = THEME["good"] if score >= 0 else THEME["danger"]
    console.print(Panel(
        f"Final score: [{color}]{score:+d}[/{color}]  ({reason})",
        border_style=color,
        box=ROUNDED,
    ))
