"""
Typed event dataclasses, the shared language between the board controller and any consumer.

The controller (controller.py) returns these. The CLI, web UI, or test harness consumes them.
All events are frozen (immutable) so they're safe to pass across async boundaries
and can be trivially serialized to JSON via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Color = Literal["white", "black"]
GameResult = Literal["1-0", "0-1", "1/2-1/2", "*"]
GameOverReason = Literal[
    "checkmate",
    "stalemate",
    "draw",
    "threefold_repetition",
    "fifty_move",
    "insufficient_material",
]


@dataclass(frozen=True)
class SelectionEvent:
    square: str
    legal_destinations: list[str]


@dataclass(frozen=True)
class SelectionClearedEvent:
    square: str


@dataclass(frozen=True)
class InvalidMoveEvent:
    color: Color
    from_square: str
    to_square: str
    error: str


@dataclass(frozen=True)
class MoveAppliedEvent:
    color: Color
    move_uci: str
    move_san: str
    fen_after: str
    is_check: bool
    current_move: int   # 1-based history index after the move
    by_engine: bool = False


@dataclass(frozen=True)
class StatusEvent:
    status: str
    turn: Color


@dataclass(frozen=True)
class EngineThinkingEvent:
    fen: str
    skill: int


@dataclass(frozen=True)
class EngineErrorEvent:
    error: str


@dataclass(frozen=True)
class UndoEvent:
    fen: str
    current_move: int
    plies_removed: int


@dataclass(frozen=True)
class GameOverEvent:
    result: GameResult
    reason: GameOverReason
    status: str
    winner: Color | None
    pgn: str
    total_moves: int
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
GameEvent = (
    SelectionEvent
    | SelectionClearedEvent
    | InvalidMoveEvent
    | MoveAppliedEvent
    | StatusEvent
    | EngineThinkingEvent
    | EngineErrorEvent
    | UndoEvent
    | GameOverEvent
)
