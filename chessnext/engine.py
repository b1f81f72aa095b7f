"""
Search engine boundary: the computer opponent.

UciSearchEngine drives a UCI binary (Stockfish by default) through
python-chess:
  1. Launch: transport, protocol = await chess.engine.popen_uci(path)
     (performs the "uci" / "uciok" handshake)
  2. Configure once: "setoption name Skill Level value N"
  3. Per request: "position fen …" + "go movetime …" → "bestmove e7e5"
  4. close() sends "quit"

One instance belongs to one game session at one skill. A difficulty change
closes it and builds a new one; instances are never re-configured.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import chess
import chess.engine

from chessnext.config import EngineConfig
from chessnext.difficulty import map_difficulty

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """The engine could not be started or failed to answer."""


@dataclass(frozen=True)
class SearchRequest:
    fen: str           # correlation token: the position the reply must still match
    request_id: int
    think_time: float = 1.0
    root_fen: str | None = None     # game start; with moves, lets the engine see repetitions
    moves: tuple[str, ...] = ()     # UCI moves from root_fen to fen


@dataclass(frozen=True)
class SearchReply:
    fen: str
    request_id: int
    move: str          # UCI, 4 or 5 characters (e.g. "e7e5", "a2a1q")


class SearchEngine(ABC):
    """Abstract base class for move-search backends."""

    def __init__(self, skill: int) -> None:
        self.skill = skill

    @abstractmethod
    async def search(self, request: SearchRequest) -> SearchReply:
        """
        Return the best move for request.fen.

        Raises:
            EngineError: the backend failed or returned no move.
        """
        ...

    async def close(self) -> None:
        """Release the backend. Safe to call more than once."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(skill={self.skill})"


class UciSearchEngine(SearchEngine):
    """
    UCI engine process, started lazily on the first search.

    Args:
        skill: value for the "Skill Level" option.
        path: engine binary (default: "stockfish" on PATH).
    """

    def __init__(self, skill: int, path: str = "stockfish") -> None:
        super().__init__(skill)
        self._path = path
        self._transport: asyncio.SubprocessTransport | None = None
        self._protocol: chess.engine.UciProtocol | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    async def _ensure_started(self) -> chess.engine.UciProtocol:
        if self._closed:
            raise EngineError("engine has been closed")
        if self._protocol is not None:
            return self._protocol
        try:
            transport, protocol = await chess.engine.popen_uci(self._path)
        except (OSError, asyncio.TimeoutError, chess.engine.EngineError) as exc:
            raise EngineError(f"cannot launch engine {self._path!r}: {exc}") from exc
        try:
            if "Skill Level" in protocol.options:
                await protocol.configure({"Skill Level": self.skill})
            else:
                logger.warning("Engine %s has no 'Skill Level' option; playing at full strength", self._path)
        except (chess.engine.EngineError, asyncio.TimeoutError) as exc:
            transport.close()
            raise EngineError(f"engine {self._path!r} rejected configuration: {exc}") from exc
        self._transport, self._protocol = transport, protocol
        logger.info("Started engine %s (skill %d)", self._path, self.skill)
        return protocol

    async def search(self, request: SearchRequest) -> SearchReply:
        async with self._lock:
            protocol = await self._ensure_started()
            board = _request_board(request)
            try:
                result = await protocol.play(board, chess.engine.Limit(time=request.think_time))
            except (chess.engine.EngineError, asyncio.TimeoutError) as exc:
                raise EngineError(f"search failed: {exc!r}") from exc
        if result.move is None:
            raise EngineError(f"engine returned no move for {request.fen}")
        logger.debug("bestmove %s for request %d", result.move.uci(), request.request_id)
        return SearchReply(fen=request.fen, request_id=request.request_id, move=result.move.uci())

    async def close(self) -> None:
        self._closed = True
        protocol, self._protocol = self._protocol, None
        if protocol is None:
            return
        try:
            await protocol.quit()
        except chess.engine.EngineTerminatedError:
            pass
        logger.info("Stopped engine %s", self._path)


def _request_board(request: SearchRequest) -> chess.Board:
    """Board at request.fen, carrying the game's move stack when it replays cleanly."""
    if request.root_fen is None:
        return chess.Board(request.fen)
    board = chess.Board(request.root_fen)
    try:
        for uci in request.moves:
            board.push_uci(uci)
    except ValueError:
        logger.debug("Request %d history does not replay; sending bare FEN", request.request_id)
        return chess.Board(request.fen)
    if board.fen() != request.fen:
        return chess.Board(request.fen)
    return board


def create_engine(config: EngineConfig, difficulty: str) -> SearchEngine:
    """Build a fresh engine for *difficulty* (unknown tiers get the default skill)."""
    return UciSearchEngine(skill=map_difficulty(difficulty), path=config.path)
