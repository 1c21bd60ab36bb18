"""
Display helpers for the Northern Journey headless runner.

Renders turn results and the village ledger with rich.
"""

from rich.console import Console
from rich.table import Table

from ..state.schemas.turn_result import TurnResult


# Shared console instance
console = Console()

# -----------------------------------------------------------------------------
# Theme: snow, pine and hearth-light
# -----------------------------------------------------------------------------

THEME = {
    "primary": "light_sky_blue1",   # winter sky
    "secondary": "grey85",          # snowfield
    "warning": "dark_goldenrod",    # lean stores
    "danger": "indian_red",         # loss
    "accent": "dark_sea_green",     # pine
    "dim": "dim",
}

# Columns shown per turn, in order
RESOURCE_COLUMNS = ["food", "wood", "stone", "gold", "population", "morale"]


def _style_amount(resource_id: str, amount) -> str:
    if resource_id in ("food", "population", "morale") and amount <= 0:
        return f"[{THEME['danger']}]{amount}[/{THEME['danger']}]"
    return f"{amount}"


def build_turn_table(results: list[TurnResult], columns: list[str] | None = None) -> Table:
    """One row per turn: season, each resource, and what happened."""
    columns = columns or RESOURCE_COLUMNS

    table = Table(title=f"[bold {THEME['primary']}]Northern Journey[/bold {THEME['primary']}]")
    table.add_column("Turn", justify="right", style=THEME["dim"])
    table.add_column("Season", style=THEME["accent"])
    for resource_id in columns:
        table.add_column(resource_id.capitalize(), justify="right", style=THEME["secondary"])
    table.add_column("Happenings", style=THEME["warning"])

    for result in results:
        resources = result.snapshot.resources
        happenings = []
        if result.starvation_deaths:
            happenings.append(f"{result.starvation_deaths} starved")
        happenings.extend(result.triggered_events)
        if result.spawned_creature:
            happenings.append(f"+{result.spawned_creature}")
        if result.season_changed_to:
            happenings.append(f"-> {result.season_changed_to}")
        if result.is_game_over:
            happenings.append(result.game_over_reason)

        table.add_row(
            str(result.turn_number),
            result.season,
            *[_style_amount(r, resources.get(r, 0)) for r in columns],
            ", ".join(happenings),
        )

    return table


def show_turns(results: list[TurnResult]) -> None:
    console.print(build_turn_table(results))


def show_game_over(reason: str) -> None:
    console.print(f"\n[bold {THEME['danger']}]{reason}[/bold {THEME['danger']}]")
