"""
Interactive difficulty selection at game start.

Displays a numbered table of the tiers, marks the one with a saved game, and
asks before a different pick discards it.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from chessnext.difficulty import TIER_INFO
from chessnext.session import DiscardConfirmationRequired, open_session
from chessnext.state import GameState
from chessnext.store import GameStateStore

console = Console(legacy_windows=False)


def select_game(store: GameStateStore) -> GameState | None:
    """
    Prompt for a tier and return the game to play, or None if the user
    declined to discard their saved game.
    """
    saved = store.saved_difficulty()
    _print_tier_table(saved)

    choices = [str(i) for i in range(1, len(TIER_INFO) + 1)]
    idx = IntPrompt.ask("\n[bold]Choose a difficulty[/]", choices=choices, show_choices=False)
    tier = TIER_INFO[idx - 1].name

    try:
        return open_session(store, tier)
    except DiscardConfirmationRequired as exc:
        console.print(f"[yellow]{exc}[/]")
        if not Confirm.ask("Start a new game anyway?", default=False):
            return None
        return open_session(store, tier, confirm=True)


def _print_tier_table(saved: str | None) -> None:
    table = Table(title="Difficulty", show_lines=False, border_style="dim")
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Level", style="bold")
    table.add_column("Skill", justify="right", style="dim")
    table.add_column("Description")
    table.add_column("", style="green")

    for i, info in enumerate(TIER_INFO, start=1):
        marker = "Saved Game" if saved == info.name else ""
        table.add_row(str(i), info.display_name, str(info.skill), info.description, marker)

    console.print(table)
