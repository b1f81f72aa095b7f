"""
Thin facade over python-chess Board and PGN machinery.

Provides the exact interface the controller needs without leaking python-chess
internals into the rest of the codebase (easier to unit-test and swap out).
Every predicate reads the live board; nothing is cached.
"""

from __future__ import annotations

import chess
import chess.pgn
from datetime import datetime

from chessnext.events import Color, GameOverReason, GameResult


def _color_name(color: chess.Color) -> Color:
    return "white" if color == chess.WHITE else "black"


class ChessBoard:
    """Facade over chess.Board."""

    def __init__(self, fen: str | None = None) -> None:
        self.reset(fen)

    def reset(self, fen: str | None = None) -> None:
        self._starting_fen = fen
        self._board = chess.Board(fen) if fen else chess.Board()

    @classmethod
    def from_board(cls, board: chess.Board) -> ChessBoard:
        """Wrap a board that already carries a move stack (e.g. a replayed history)."""
        inst = cls.__new__(cls)
        root = board.root()
        inst._starting_fen = None if root.fen() == chess.STARTING_FEN else root.fen()
        inst._board = board
        return inst

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return _color_name(self._board.turn)

    @property
    def is_check(self) -> bool:
        return self._board.is_check()

    @property
    def is_checkmate(self) -> bool:
        return self._board.is_checkmate()

    @property
    def is_draw(self) -> bool:
        # Claimable draws (threefold repetition, fifty-move) count as terminal:
        # neither side is ever offered the claim.
        outcome = self._board.outcome(claim_draw=True)
        return outcome is not None and outcome.winner is None

    @property
    def is_game_over(self) -> bool:
        return self._board.is_game_over(claim_draw=True)

    @property
    def last_move(self) -> chess.Move | None:
        return self._board.peek() if self._board.move_stack else None

    def piece_color_at(self, square: str) -> Color | None:
        """Colour of the piece on *square*, or None for empty/invalid squares."""
        try:
            piece = self._board.piece_at(chess.parse_square(square))
        except ValueError:
            return None
        return _color_name(piece.color) if piece else None

    def legal_destinations(self, square: str) -> list[str]:
        """Destination squares of the legal moves starting on *square*."""
        try:
            origin = chess.parse_square(square)
        except ValueError:
            return []
        destinations: list[str] = []
        for move in self._board.legal_moves:
            if move.from_square == origin:
                name = chess.square_name(move.to_square)
                if name not in destinations:
                    destinations.append(name)
        return destinations

    def move_history_san(self) -> list[str]:
        """All moves played so far in SAN notation (replays from start)."""
        board_copy = chess.Board(self._starting_fen) if self._starting_fen else chess.Board()
        san_moves: list[str] = []
        for move in self._board.move_stack:
            san_moves.append(board_copy.san(move))
            board_copy.push(move)
        return san_moves

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def try_move(self, from_square: str, to_square: str, promotion: str | None = "q") -> chess.Move | None:
        """
        Apply from→to if legal and return the pushed move, else None.

        *promotion* is only attached when the move really is a pawn reaching
        the last rank, so "e2e4" with the default "q" is still a plain push.
        """
        try:
            origin = chess.parse_square(from_square)
            target = chess.parse_square(to_square)
        except ValueError:
            return None

        move = chess.Move(origin, target)
        if promotion and self._is_promotion(move):
            try:
                move.promotion = chess.Piece.from_symbol(promotion.lower()).piece_type
            except ValueError:
                return None

        if move not in self._board.legal_moves:
            return None
        self._board.push(move)
        return move

    def san_of_last_move(self) -> str:
        """SAN of the move on top of the stack, computed on the position before it."""
        move = self._board.pop()
        san = self._board.san(move)
        self._board.push(move)
        return san

    def _is_promotion(self, move: chess.Move) -> bool:
        piece = self._board.piece_at(move.from_square)
        if piece is None or piece.piece_type != chess.PAWN:
            return False
        rank = chess.square_rank(move.to_square)
        return (piece.color == chess.WHITE and rank == 7) or (piece.color == chess.BLACK and rank == 0)

    # ------------------------------------------------------------------ #
    # Game-over info                                                      #
    # ------------------------------------------------------------------ #

    def status_text(self) -> str:
        side = "White" if self._board.turn == chess.WHITE else "Black"
        other = "Black" if self._board.turn == chess.WHITE else "White"
        if self.is_checkmate:
            return f"Checkmate! {other} wins!"
        if self.is_draw:
            return "Game is a draw!"
        if self.is_check:
            return f"{side} is in check!"
        return f"{side} turn to move"

    def game_over_reason(self) -> GameOverReason:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return "draw"
        match outcome.termination:
            case chess.Termination.CHECKMATE:
                return "checkmate"
            case chess.Termination.STALEMATE:
                return "stalemate"
            case chess.Termination.THREEFOLD_REPETITION:
                return "threefold_repetition"
            case chess.Termination.FIFTY_MOVES:
                return "fifty_move"
            case chess.Termination.INSUFFICIENT_MATERIAL:
                return "insufficient_material"
            case _:
                return "draw"

    def result(self) -> GameResult:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return "*"
        return outcome.result()  # type: ignore[return-value]

    def winner_color(self) -> Color | None:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None or outcome.winner is None:
            return None
        return _color_name(outcome.winner)

    # ------------------------------------------------------------------ #
    # PGN                                                                 #
    # ------------------------------------------------------------------ #

    def to_pgn(self, white_name: str = "Human", black_name: str = "Engine") -> str:
        game = chess.pgn.Game.from_board(self._board)
        game.headers["Event"] = "ChessNext"
        game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
        game.headers["White"] = white_name
        game.headers["Black"] = black_name
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return game.accept(exporter)

    @property
    def board(self) -> chess.Board:
        return self._board
