"""
Rich-based CLI event consumer.

This is the ONLY place where terminal output happens.
It translates GameEvent objects into formatted Rich output.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from chessnext.controller import BoardController
from chessnext.events import (
    GameEvent,
    SelectionEvent,
    SelectionClearedEvent,
    InvalidMoveEvent,
    MoveAppliedEvent,
    StatusEvent,
    EngineThinkingEvent,
    EngineErrorEvent,
    UndoEvent,
    GameOverEvent,
)
from chessnext.renderer import render_ascii

console = Console(legacy_windows=False)


def display_event(event: GameEvent) -> None:
    """Dispatch a GameEvent to the appropriate display function."""
    match event:
        case SelectionEvent():
            targets = ", ".join(event.legal_destinations) or "none"
            console.print(f"  [cyan]{event.square}[/] selected  [dim]→ {targets}[/]")
        case SelectionClearedEvent():
            console.print(f"  [dim]{event.square} deselected[/]")
        case InvalidMoveEvent():
            console.print(f"  [red]✗[/] {event.error}")
        case MoveAppliedEvent():
            _move_applied(event)
        case StatusEvent():
            console.print(f"  [dim]{event.status}[/]")
        case EngineThinkingEvent():
            console.print(f"  [dim]engine thinking (skill {event.skill})…[/]")
        case EngineErrorEvent():
            console.print(f"  [bold red]Engine error:[/] {event.error}")
        case UndoEvent():
            console.print(f"  [yellow]↶[/] took back {event.plies_removed} ply")
        case GameOverEvent():
            _game_over(event)


def display_board(controller: BoardController) -> None:
    state = controller.state
    console.print()
    console.print(
        Panel(
            f"[green]{render_ascii(controller.board.board)}[/]",
            title=f"[bold]{state.difficulty.title()}[/] [dim]move {state.current_move}[/]",
            subtitle=f"[dim]{controller.board.fen}[/]",
            border_style="dim",
            padding=(0, 1),
        )
    )
    history = controller.board.move_history_san()
    if history:
        console.print(f"[dim]History:[/] {' '.join(history)}")
    console.print(
        f"[dim]Clock:[/] white {_clock(state.white_time)}  black {_clock(state.black_time)}"
        f"  [dim]total {_clock(state.game_time)}[/]"
    )
    console.print(f"[bold]{controller.status()}[/]")


# --------------------------------------------------------------------------- #
# Display functions                                                            #
# --------------------------------------------------------------------------- #

def _clock(seconds: int) -> str:
    return f"{seconds // 60:d}:{seconds % 60:02d}"


def _move_applied(event: MoveAppliedEvent) -> None:
    who = "[bold bright_black]engine[/]" if event.by_engine else "[bold white]you[/]"
    check_tag = "  [bold red]+[/]" if event.is_check else ""
    console.print(
        f"  [green]✓[/] {who}: [bold]{event.move_san}[/]{check_tag}"
        f"  [dim]({event.move_uci})[/]"
    )


def _game_over(event: GameOverEvent) -> None:
    result_styles: dict[str, str] = {
        "1-0": "bold green",
        "0-1": "bold red",
        "1/2-1/2": "bold yellow",
        "*": "dim",
    }
    style = result_styles.get(event.result, "white")
    reason = event.reason.replace("_", " ").title()

    console.print()
    console.print(
        Panel(
            f"[{style}]{event.result}[/]  —  {reason}\n"
            f"{event.status}\n"
            f"[dim]Total moves: {event.total_moves}[/]",
            title="[bold]Game Over[/]",
            border_style=style.replace("bold ", ""),
            expand=False,
        )
    )

    console.print()
    console.rule("[dim]PGN[/]")
    console.print(event.pgn)
    console.rule()
