import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import chess
import chess.engine

from chessnext.config import EngineConfig
from chessnext.engine import EngineError, SearchRequest, UciSearchEngine, create_engine


def _fake_protocol(move: str | None = "e7e5", options: dict | None = None) -> MagicMock:
    protocol = MagicMock()
    protocol.options = {"Skill Level": object()} if options is None else options
    protocol.configure = AsyncMock()
    protocol.play = AsyncMock(
        return_value=MagicMock(move=chess.Move.from_uci(move) if move else None)
    )
    protocol.quit = AsyncMock()
    return protocol


class UciSearchEngineTests(unittest.IsolatedAsyncioTestCase):
    async def test_search_configures_skill_once_and_returns_correlated_reply(self) -> None:
        protocol = _fake_protocol()
        popen = AsyncMock(return_value=(MagicMock(), protocol))
        with patch("chess.engine.popen_uci", popen):
            engine = UciSearchEngine(skill=14, path="/opt/stockfish")
            fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
            reply = await engine.search(SearchRequest(fen=fen, request_id=7, think_time=0.25))
            await engine.search(SearchRequest(fen=fen, request_id=8))

        popen.assert_awaited_once_with("/opt/stockfish")
        protocol.configure.assert_awaited_once_with({"Skill Level": 14})
        self.assertEqual(reply.move, "e7e5")
        self.assertEqual(reply.fen, fen)
        self.assertEqual(reply.request_id, 7)
        board, limit = protocol.play.await_args_list[0].args
        self.assertEqual(board.fen(), fen)
        self.assertEqual(limit.time, 0.25)

    async def test_missing_binary_raises_engine_error(self) -> None:
        popen = AsyncMock(side_effect=FileNotFoundError("stockfish"))
        with patch("chess.engine.popen_uci", popen):
            engine = UciSearchEngine(skill=2)
            with self.assertRaises(EngineError):
                await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))

    async def test_engine_that_exits_during_handshake_raises_engine_error(self) -> None:
        for failure in (
            chess.engine.EngineTerminatedError("engine process died unexpectedly"),
            asyncio.TimeoutError(),
            OSError("exec format error"),
        ):
            with self.subTest(failure=type(failure).__name__):
                with patch("chess.engine.popen_uci", AsyncMock(side_effect=failure)):
                    engine = UciSearchEngine(skill=2, path="/tmp/not-an-engine")
                    with self.assertRaises(EngineError):
                        await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))

    async def test_search_sends_the_game_history(self) -> None:
        protocol = _fake_protocol(move="g8f6")
        board = chess.Board()
        for uci in ("g1f3", "g8f6", "f3g1", "f6g8", "g1f3"):
            board.push_uci(uci)
        moves = tuple(m.uci() for m in board.move_stack)
        with patch("chess.engine.popen_uci", AsyncMock(return_value=(MagicMock(), protocol))):
            engine = UciSearchEngine(skill=2)
            await engine.search(SearchRequest(fen=board.fen(), request_id=1, root_fen=chess.STARTING_FEN, moves=moves))
            await engine.search(SearchRequest(fen=board.fen(), request_id=2, root_fen=chess.STARTING_FEN, moves=("e2e4",)))

        with_history = protocol.play.await_args_list[0].args[0]
        self.assertEqual(len(with_history.move_stack), 5)
        self.assertEqual(with_history.fen(), board.fen())
        mismatched = protocol.play.await_args_list[1].args[0]
        self.assertEqual(mismatched.move_stack, [])
        self.assertEqual(mismatched.fen(), board.fen())

    async def test_engine_failure_mid_search_raises_engine_error(self) -> None:
        protocol = _fake_protocol()
        protocol.play = AsyncMock(side_effect=chess.engine.EngineTerminatedError("died"))
        with patch("chess.engine.popen_uci", AsyncMock(return_value=(MagicMock(), protocol))):
            engine = UciSearchEngine(skill=2)
            with self.assertRaises(EngineError):
                await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))

    async def test_no_move_raises_engine_error(self) -> None:
        protocol = _fake_protocol(move=None)
        with patch("chess.engine.popen_uci", AsyncMock(return_value=(MagicMock(), protocol))):
            engine = UciSearchEngine(skill=2)
            with self.assertRaises(EngineError):
                await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))

    async def test_engine_without_skill_option_is_not_configured(self) -> None:
        protocol = _fake_protocol(options={})
        with patch("chess.engine.popen_uci", AsyncMock(return_value=(MagicMock(), protocol))):
            engine = UciSearchEngine(skill=5)
            with self.assertLogs("chessnext.engine", level="WARNING"):
                await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))
        protocol.configure.assert_not_awaited()

    async def test_close_quits_and_blocks_further_searches(self) -> None:
        protocol = _fake_protocol()
        with patch("chess.engine.popen_uci", AsyncMock(return_value=(MagicMock(), protocol))):
            engine = UciSearchEngine(skill=2)
            await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=1))
            await engine.close()
            await engine.close()
            with self.assertRaises(EngineError):
                await engine.search(SearchRequest(fen=chess.STARTING_FEN, request_id=2))
        protocol.quit.assert_awaited_once()

    def test_create_engine_maps_difficulty(self) -> None:
        cfg = EngineConfig(path="sf")
        self.assertEqual(create_engine(cfg, "expert").skill, 17)
        self.assertEqual(create_engine(cfg, "unknown").skill, 10)
