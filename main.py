"""
ChessNext terminal entry point.

Wires together:  config → store → difficulty selector → controller → CLI display
"""

from __future__ import annotations

import asyncio
import sys
import time

from chessnext.cli.display import console, display_board, display_event
from chessnext.cli.selector import select_game
from chessnext.config import load_config_or_default
from chessnext.controller import BoardController
from chessnext.engine import create_engine
from chessnext.store import GameStateStore, JsonFileStore

_HELP = "Enter a square (e.g. e2), 'undo', or 'quit'."


async def _main() -> None:
    try:
        config = load_config_or_default("config.yaml")
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    store = GameStateStore(JsonFileStore(config.storage_path), key=config.storage.key)
    state = select_game(store)
    if state is None:
        console.print("[dim]Keeping your saved game.[/]")
        return

    controller = BoardController(
        state,
        store,
        lambda tier: create_engine(config.engine, tier),
        think_time=config.engine.think_time,
    )
    console.print(f"[dim]{_HELP}[/]")

    loop = asyncio.get_running_loop()
    try:
        while True:
            if controller.engine_due:
                await asyncio.sleep(config.engine.reply_delay)
                async for event in controller.play_engine_turn():
                    display_event(event)

            display_board(controller)
            if controller.board.is_game_over:
                break

            started = time.monotonic()
            raw = await loop.run_in_executor(None, input, "> ")
            controller.tick(int(time.monotonic() - started))

            command = raw.strip().lower()
            if command in ("quit", "exit", "q"):
                break
            if command == "undo":
                events = controller.undo()
            elif command:
                events = controller.click(command)
                if not events:
                    console.print(f"[dim]Nothing to do on {command!r}. {_HELP}[/]")
            else:
                continue
            for event in events:
                display_event(event)
    finally:
        await controller.close()


def main() -> None:
    try:
        asyncio.run(_main())
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Game saved.[/]")


if __name__ == "__main__":
    main()
