"""
The persisted record of one in-progress game.

GameState mirrors the JSON layout saved under STORAGE_KEY (camelCase keys,
"fen" for positions) so records written by one version stay readable by the
next. from_dict() is the only way in from untrusted JSON: it checks the
structure and replays the history before handing back a GameState.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import chess

from chessnext.difficulty import normalize_tier

PlayerColor = Literal["w", "b"]

STARTING_FEN = chess.STARTING_FEN


class StateValidationError(ValueError):
    """A stored record does not describe a reachable game."""


@dataclass(frozen=True)
class LastMove:
    from_square: str
    to_square: str
    promotion: str | None = None
    san: str = ""

    @property
    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"

    def to_move(self) -> chess.Move:
        return chess.Move.from_uci(self.uci)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_square,
            "to": self.to_square,
            "promotion": self.promotion,
            "san": self.san,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> LastMove:
        if not isinstance(raw, dict):
            raise StateValidationError(f"lastMove must be an object, got {type(raw).__name__}")
        from_square = raw.get("from")
        to_square = raw.get("to")
        promotion = raw.get("promotion")
        san = raw.get("san", "")
        for name, value in (("from", from_square), ("to", to_square)):
            if not isinstance(value, str) or value not in chess.SQUARE_NAMES:
                raise StateValidationError(f"lastMove.{name} is not a square: {value!r}")
        if promotion is not None and promotion not in ("q", "r", "b", "n"):
            raise StateValidationError(f"lastMove.promotion is invalid: {promotion!r}")
        if not isinstance(san, str):
            raise StateValidationError("lastMove.san must be a string")
        return cls(from_square=from_square, to_square=to_square, promotion=promotion, san=san)

    @classmethod
    def from_chess_move(cls, move: chess.Move, san: str = "") -> LastMove:
        promotion = chess.piece_symbol(move.promotion) if move.promotion else None
        return cls(
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=promotion,
            san=san,
        )


@dataclass(frozen=True)
class HistoryEntry:
    position: str
    last_move: LastMove | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fen": self.position,
            "lastMove": self.last_move.to_dict() if self.last_move else None,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> HistoryEntry:
        if not isinstance(raw, dict):
            raise StateValidationError("history entries must be objects")
        fen = raw.get("fen")
        if not isinstance(fen, str):
            raise StateValidationError("history entry is missing its fen")
        last_raw = raw.get("lastMove")
        last_move = LastMove.from_dict(last_raw) if last_raw is not None else None
        return cls(position=fen, last_move=last_move)


@dataclass
class GameState:
    position: str = STARTING_FEN
    player_color: PlayerColor = "w"
    game_time: int = 0
    white_time: int = 0
    black_time: int = 0
    difficulty: str = "beginner"
    game_started: bool = False
    history: list[HistoryEntry] = field(default_factory=lambda: [HistoryEntry(STARTING_FEN)])
    current_move: int = 1
    last_move: LastMove | None = None

    @property
    def human_color(self) -> chess.Color:
        return chess.WHITE if self.player_color == "w" else chess.BLACK

    # ------------------------------------------------------------------ #
    # Mutation                                                             #
    # ------------------------------------------------------------------ #

    def record_move(self, fen: str, last_move: LastMove) -> None:
        """Append one ply after the current one and make it current."""
        del self.history[self.current_move:]
        self.history.append(HistoryEntry(position=fen, last_move=last_move))
        self.current_move = len(self.history)
        self.position = fen
        self.last_move = last_move
        self.game_started = True

    def truncate(self, current_move: int) -> None:
        """Drop every ply after *current_move* (1-based) and make it current."""
        if not 1 <= current_move <= len(self.history):
            raise IndexError(f"current_move {current_move} outside 1..{len(self.history)}")
        del self.history[current_move:]
        self.current_move = current_move
        entry = self.history[-1]
        self.position = entry.position
        self.last_move = entry.last_move

    def replay(self) -> chess.Board:
        """
        Rebuild the board by replaying history up to current_move.

        The returned board carries the full move stack, so repetition and
        fifty-move detection work as if the game had never been reloaded.
        """
        board = chess.Board(self.history[0].position)
        for entry in self.history[1:self.current_move]:
            if entry.last_move is None:
                raise StateValidationError("history entry after the first has no lastMove")
            move = entry.last_move.to_move()
            if move not in board.legal_moves:
                raise StateValidationError(f"illegal move in history: {move.uci()}")
            board.push(move)
            if board.fen() != _normalize_fen(entry.position):
                raise StateValidationError(f"history fen does not match replay after {move.uci()}")
        return board

    # ------------------------------------------------------------------ #
    # Serialization                                                        #
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        return {
            "fen": self.position,
            "playerColor": self.player_color,
            "gameTime": self.game_time,
            "whiteTime": self.white_time,
            "blackTime": self.black_time,
            "difficulty": self.difficulty,
            "gameStarted": self.game_started,
            "history": [entry.to_dict() for entry in self.history],
            "currentMove": self.current_move,
            "lastMove": self.last_move.to_dict() if self.last_move else None,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> GameState:
        """
        Build a GameState from parsed JSON.

        Raises:
            StateValidationError: the record is structurally wrong or its
                history does not replay to its position.
        """
        if not isinstance(raw, dict):
            raise StateValidationError(f"state must be an object, got {type(raw).__name__}")

        try:
            fen = raw["fen"]
            player_color = raw["playerColor"]
            times = {k: raw[k] for k in ("gameTime", "whiteTime", "blackTime")}
            difficulty_raw = raw["difficulty"]
            game_started = raw["gameStarted"]
            history_raw = raw["history"]
            current_move = raw["currentMove"]
            last_raw = raw.get("lastMove")
        except KeyError as exc:
            raise StateValidationError(f"missing key {exc}") from exc

        if not isinstance(fen, str):
            raise StateValidationError("fen must be a string")
        if player_color not in ("w", "b"):
            raise StateValidationError(f"playerColor must be 'w' or 'b', got {player_color!r}")
        for name, value in times.items():
            if not _is_int(value) or value < 0:
                raise StateValidationError(f"{name} must be a non-negative integer")
        difficulty = normalize_tier(difficulty_raw)
        if difficulty is None:
            raise StateValidationError(f"unknown difficulty {difficulty_raw!r}")
        if not isinstance(game_started, bool):
            raise StateValidationError("gameStarted must be a boolean")
        if not isinstance(history_raw, list) or not history_raw:
            raise StateValidationError("history must be a non-empty list")
        history = [HistoryEntry.from_dict(entry) for entry in history_raw]
        if history[0].last_move is not None:
            raise StateValidationError("first history entry must have no lastMove")
        if not _is_int(current_move) or not 1 <= current_move <= len(history):
            raise StateValidationError(f"currentMove out of range: {current_move!r}")
        if not game_started and (len(history) != 1 or current_move != 1):
            raise StateValidationError("gameStarted is false but moves were played")
        last_move = LastMove.from_dict(last_raw) if last_raw is not None else None
        if last_move != history[current_move - 1].last_move:
            raise StateValidationError("lastMove does not match the current history entry")

        try:
            chess.Board(history[0].position)
            state = cls(
                position=fen,
                player_color=player_color,
                game_time=times["gameTime"],
                white_time=times["whiteTime"],
                black_time=times["blackTime"],
                difficulty=difficulty,
                game_started=game_started,
                history=history,
                current_move=current_move,
                last_move=last_move,
            )
            board = state.replay()
            if board.fen() != _normalize_fen(fen):
                raise StateValidationError("fen is not reproducible from history")
        except ValueError as exc:
            # chess.Board() rejects malformed FEN with a plain ValueError
            if isinstance(exc, StateValidationError):
                raise
            raise StateValidationError(f"invalid position: {exc}") from exc
        return state


def default_state(difficulty: str = "beginner") -> GameState:
    """A fresh, never-played game at *difficulty*."""
    tier = normalize_tier(difficulty) or "beginner"
    return GameState(difficulty=tier)


def _normalize_fen(fen: str) -> str:
    return chess.Board(fen).fen()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
