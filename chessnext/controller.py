"""
Board interaction controller: the click-driven game loop.

This module is UI-agnostic. It returns (or, for engine turns, yields) typed
GameEvent objects and never prints. The web handler and the CLI are both thin
consumers.

Selection state per square click:
    Idle           --click own piece-->   PieceSelected (legal targets cached)
    PieceSelected  --click any square-->  move attempted, back to Idle

Engine turns go through begin_search() / apply_engine_reply(). At most one
search is outstanding; a reply is applied only if it answers that request and
the board still shows the position it was asked about.
"""

from __future__ import annotations

import itertools
import logging
from typing import AsyncGenerator, Callable

import chess

from chessnext.board import ChessBoard
from chessnext.engine import EngineError, SearchEngine, SearchReply, SearchRequest
from chessnext.events import (
    Color,
    EngineErrorEvent,
    EngineThinkingEvent,
    GameEvent,
    GameOverEvent,
    InvalidMoveEvent,
    MoveAppliedEvent,
    SelectionClearedEvent,
    SelectionEvent,
    StatusEvent,
    UndoEvent,
)
from chessnext.state import GameState, LastMove, default_state
from chessnext.store import GameStateStore

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str], SearchEngine]

# Promotions are always to a queen; underpromotion is not offered.
AUTO_PROMOTION = "q"


class BoardController:
    """
    Owns one game session: its state, its board and its engine.

    Args:
        state: the game to continue (usually loaded or default_state()).
        store: where every change is saved.
        engine_factory: builds a SearchEngine for a difficulty tier.
        think_time: seconds the engine may spend per move.
    """

    def __init__(
        self,
        state: GameState,
        store: GameStateStore,
        engine_factory: EngineFactory,
        think_time: float = 1.0,
    ) -> None:
        self.state = state
        self._store = store
        self._engine_factory = engine_factory
        self._think_time = think_time
        self._board = ChessBoard.from_board(state.replay())
        self._engine = engine_factory(state.difficulty)
        self._selected: str | None = None
        self._legal_destinations: list[str] = []
        self._pending: SearchRequest | None = None
        self._request_ids = itertools.count(1)

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    @property
    def board(self) -> ChessBoard:
        return self._board

    @property
    def engine(self) -> SearchEngine:
        return self._engine

    @property
    def human_color(self) -> Color:
        return "white" if self.state.human_color == chess.WHITE else "black"

    @property
    def selected_square(self) -> str | None:
        return self._selected

    @property
    def legal_destinations(self) -> list[str]:
        return list(self._legal_destinations)

    @property
    def search_pending(self) -> bool:
        return self._pending is not None

    @property
    def is_human_turn(self) -> bool:
        return self._board.turn == self.human_color

    @property
    def engine_due(self) -> bool:
        """The engine should move now and has not been asked yet."""
        return not self.is_human_turn and not self._board.is_game_over and self._pending is None

    def status(self) -> str:
        return self._board.status_text()

    # ------------------------------------------------------------------ #
    # Human input                                                          #
    # ------------------------------------------------------------------ #

    def click(self, square: str) -> list[GameEvent]:
        """Handle a click on *square* (e.g. "e2"). Returns the resulting events."""
        square = square.strip().lower()
        if not self.is_human_turn or self._board.is_game_over or self._pending is not None:
            return []

        if self._selected is None:
            if self._board.piece_color_at(square) != self.human_color:
                return []
            self._selected = square
            self._legal_destinations = self._board.legal_destinations(square)
            return [SelectionEvent(square=square, legal_destinations=list(self._legal_destinations))]

        origin = self._selected
        self._clear_selection()
        applied = self._apply_move(origin, square, by_engine=False)
        if applied is None:
            logger.debug("Invalid move %s%s", origin, square)
            return [
                InvalidMoveEvent(
                    color=self.human_color,
                    from_square=origin,
                    to_square=square,
                    error=f"{origin}{square} is not a legal move",
                ),
                SelectionClearedEvent(square=origin),
            ]
        return applied

    # ------------------------------------------------------------------ #
    # Engine turns                                                         #
    # ------------------------------------------------------------------ #

    def begin_search(self) -> SearchRequest | None:
        """Issue a search request if the engine is due, else None."""
        if not self.engine_due:
            return None
        self._pending = SearchRequest(
            fen=self._board.fen,
            request_id=next(self._request_ids),
            think_time=self._think_time,
            root_fen=self._board.board.root().fen(),
            moves=tuple(move.uci() for move in self._board.board.move_stack),
        )
        return self._pending

    def apply_engine_reply(self, reply: SearchReply) -> list[GameEvent]:
        """Apply the engine's move exactly as a human move would be applied."""
        pending = self._pending
        if pending is None or reply.request_id != pending.request_id:
            logger.debug("Dropping reply %d: no matching request", reply.request_id)
            return []
        self._pending = None
        if reply.fen != self._board.fen or self._board.is_game_over:
            logger.debug("Dropping stale reply %s for %s", reply.move, reply.fen)
            return []
        if len(reply.move) < 4:
            logger.warning("Malformed engine move %r", reply.move)
            return [EngineErrorEvent(error=f"malformed engine move {reply.move!r}")]

        applied = self._apply_move(reply.move[0:2], reply.move[2:4], by_engine=True)
        if applied is None:
            logger.warning("Engine proposed illegal move %s in %s", reply.move, reply.fen)
            return [EngineErrorEvent(error=f"engine proposed illegal move {reply.move}")]
        return applied

    async def play_engine_turn(self) -> AsyncGenerator[GameEvent, None]:
        """Ask the engine for a move and yield the events of applying it."""
        request = self.begin_search()
        if request is None:
            return
        yield EngineThinkingEvent(fen=request.fen, skill=self._engine.skill)
        reply: SearchReply | None = None
        try:
            reply = await self._engine.search(request)
        except EngineError as exc:
            if self._pending is not request:
                logger.debug("Ignoring failure of superseded search %d: %s", request.request_id, exc)
                return
            self._pending = None
            logger.error("Engine search failed: %s", exc)
            yield EngineErrorEvent(error=str(exc))
            return
        finally:
            # Unexpected failures and cancellation release the request too.
            if reply is None and self._pending is request:
                self._pending = None
        for event in self.apply_engine_reply(reply):
            yield event

    # ------------------------------------------------------------------ #
    # Session control                                                      #
    # ------------------------------------------------------------------ #

    def undo(self) -> list[GameEvent]:
        """Take back the last human move together with any engine reply to it."""
        if self._pending is not None or self.state.current_move <= 1:
            return []
        human = self.state.human_color
        target = self.state.current_move - 1
        while target > 1 and chess.Board(self.state.history[target - 1].position).turn != human:
            target -= 1
        removed = self.state.current_move - target
        self.state.truncate(target)
        self._board = ChessBoard.from_board(self.state.replay())
        self._clear_selection()
        self._store.save(self.state)
        return [
            UndoEvent(fen=self._board.fen, current_move=self.state.current_move, plies_removed=removed),
            StatusEvent(status=self.status(), turn=self._board.turn),
        ]

    def tick(self, seconds: int = 1) -> None:
        """Advance the game clock and the clock of the side to move."""
        if seconds <= 0 or not self.state.game_started or self._board.is_game_over:
            return
        self.state.game_time += seconds
        if self._board.turn == "white":
            self.state.white_time += seconds
        else:
            self.state.black_time += seconds
        self._store.save(self.state)

    async def new_game(self, difficulty: str) -> list[GameEvent]:
        """Start over at *difficulty* with a freshly built engine."""
        await self._engine.close()
        self.state = default_state(difficulty)
        self._board = ChessBoard.from_board(self.state.replay())
        self._engine = self._engine_factory(self.state.difficulty)
        self._pending = None
        self._clear_selection()
        self._store.save(self.state)
        return [StatusEvent(status=self.status(), turn=self._board.turn)]

    async def close(self) -> None:
        self._pending = None
        await self._engine.close()

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _clear_selection(self) -> None:
        self._selected = None
        self._legal_destinations = []

    def _apply_move(self, from_square: str, to_square: str, *, by_engine: bool) -> list[GameEvent] | None:
        color = self._board.turn
        move = self._board.try_move(from_square, to_square, AUTO_PROMOTION)
        if move is None:
            return None
        san = self._board.san_of_last_move()
        self.state.record_move(self._board.fen, LastMove.from_chess_move(move, san))
        self._store.save(self.state)

        events: list[GameEvent] = [
            MoveAppliedEvent(
                color=color,
                move_uci=move.uci(),
                move_san=san,
                fen_after=self._board.fen,
                is_check=self._board.is_check,
                current_move=self.state.current_move,
                by_engine=by_engine,
            )
        ]
        events.append(self._outcome_event())
        return events

    def _outcome_event(self) -> GameEvent:
        if not self._board.is_game_over:
            return StatusEvent(status=self.status(), turn=self._board.turn)
        engine_name = f"Engine ({self.state.difficulty})"
        if self.human_color == "white":
            pgn = self._board.to_pgn("Human", engine_name)
        else:
            pgn = self._board.to_pgn(engine_name, "Human")
        return GameOverEvent(
            result=self._board.result(),
            reason=self._board.game_over_reason(),
            status=self.status(),
            winner=self._board.winner_color(),
            pgn=pgn,
            total_moves=len(self._board.move_history_san()),
        )
