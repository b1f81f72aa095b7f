import unittest
from unittest.mock import patch

import chess
from fastapi.testclient import TestClient

from chessnext.config import Config, EngineConfig
from chessnext.difficulty import map_difficulty
from chessnext.engine import SearchEngine, SearchReply, SearchRequest
from chessnext.state import LastMove, default_state
from chessnext.store import GameStateStore, MemoryStore
from chessnext.web import app as web_app


class _ScriptedEngine(SearchEngine):
    def __init__(self, skill: int, moves: list[str]) -> None:
        super().__init__(skill)
        self._moves = moves

    async def search(self, request: SearchRequest) -> SearchReply:
        return SearchReply(fen=request.fen, request_id=request.request_id, move=self._moves.pop(0))


def _started(difficulty: str):
    state = default_state(difficulty)
    board = chess.Board()
    board.push_uci("e2e4")
    state.record_move(board.fen(), LastMove("e2", "e4", None, "e4"))
    return state


class WebAppTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = GameStateStore(MemoryStore())
        self.moves: list[str] = []
        cfg = Config(engine=EngineConfig(think_time=0.1, reply_delay=0))
        for target, value in (
            ("store", self.store),
            ("config", cfg),
            ("_engine_factory", lambda tier: _ScriptedEngine(map_difficulty(tier), self.moves)),
        ):
            patcher = patch.object(web_app, target, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.client = TestClient(web_app.app)

    def test_difficulties_flag_the_saved_game(self) -> None:
        self.store.save(_started("advanced"))
        tiers = self.client.get("/api/difficulties").json()
        self.assertEqual([t["name"] for t in tiers][:2], ["beginner", "easy"])
        saved = [t["name"] for t in tiers if t["saved"]]
        self.assertEqual(saved, ["advanced"])

    def test_get_game_404_without_saved_game(self) -> None:
        self.assertEqual(self.client.get("/api/game").status_code, 404)

    def test_open_game_requires_confirmation_for_other_tier(self) -> None:
        self.store.save(_started("easy"))

        resp = self.client.post("/api/game", json={"difficulty": "hard"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["detail"]["savedDifficulty"], "easy")

        resp = self.client.post("/api/game", json={"difficulty": "Easy"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["gameStarted"])

        resp = self.client.post("/api/game", json={"difficulty": "hard", "confirm": True})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["difficulty"], "hard")
        self.assertFalse(resp.json()["gameStarted"])

    def test_open_game_unknown_tier(self) -> None:
        resp = self.client.post("/api/game", json={"difficulty": "impossible"})
        self.assertEqual(resp.status_code, 404)

    def test_delete_game(self) -> None:
        self.store.save(_started("easy"))
        self.assertEqual(self.client.delete("/api/game").status_code, 200)
        self.assertIsNone(self.store.load())

    def test_board_svg(self) -> None:
        self.store.save(_started("easy"))
        resp = self.client.get("/api/game/board.svg")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("image/svg+xml"))
        self.assertIn("<svg", resp.text)
        self.assertIn('class="arrow"', resp.text)

        self.store.clear()
        self.assertNotIn('class="arrow"', self.client.get("/api/game/board.svg").text)

    def test_websocket_plays_human_and_engine_moves(self) -> None:
        self.moves.append("e7e5")
        with self.client.websocket_connect("/ws/play/beginner") as ws:
            snapshot = ws.receive_json()
            self.assertEqual(snapshot["type"], "state")
            self.assertEqual(snapshot["status"], "White turn to move")
            self.assertEqual(snapshot["skill"], 2)

            ws.send_json({"type": "click", "square": "e2"})
            self.assertEqual(ws.receive_json()["type"], "SelectionEvent")

            ws.send_json({"type": "click", "square": "e4"})
            received = [ws.receive_json() for _ in range(5)]

        types = [m["type"] for m in received]
        self.assertEqual(
            types,
            ["MoveAppliedEvent", "StatusEvent", "EngineThinkingEvent", "MoveAppliedEvent", "StatusEvent"],
        )
        self.assertTrue(received[3]["by_engine"])
        saved = self.store.load()
        self.assertEqual(saved.current_move, 3)
        self.assertEqual(saved.last_move.uci, "e7e5")

    def test_websocket_refuses_to_discard_without_confirmation(self) -> None:
        self.store.save(_started("easy"))
        with self.client.websocket_connect("/ws/play/hard") as ws:
            msg = ws.receive_json()
        self.assertEqual(msg["type"], "confirm_required")
        self.assertEqual(self.store.load().difficulty, "easy")

    def test_bad_client_messages_do_not_end_the_session(self) -> None:
        with self.client.websocket_connect("/ws/play/beginner") as ws:
            self.assertEqual(ws.receive_json()["type"], "state")

            ws.send_json({"type": "tick", "seconds": "abc"})
            self.assertEqual(ws.receive_json()["type"], "error")
            ws.send_json([1])
            self.assertEqual(ws.receive_json()["type"], "error")
            ws.send_text("{not json")
            self.assertEqual(ws.receive_json()["type"], "error")

            ws.send_json({"type": "click", "square": "e2"})
            selection = ws.receive_json()

        self.assertEqual(selection["type"], "SelectionEvent")
        self.assertEqual(selection["square"], "e2")
