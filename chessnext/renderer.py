"""
Board rendering.

SVG is always available via python-chess (served to the web UI).
ASCII is always available via python-chess (printed by the CLI).
"""

from __future__ import annotations

import chess
import chess.svg


def render_ascii(board: chess.Board) -> str:
    """Standard ASCII board via python-chess."""
    return str(board)


def render_svg(board: chess.Board, last_move: chess.Move | None = None) -> str:
    """SVG string of the board, with optional last-move arrow and check highlight."""
    arrows: list[chess.svg.Arrow] = []
    if last_move is not None:
        arrows = [chess.svg.Arrow(last_move.from_square, last_move.to_square, color="#cc0000bb")]
    check = board.king(board.turn) if board.is_check() else None
    return chess.svg.board(board=board, arrows=arrows, check=check, size=400)
