import unittest

import chess

from chessnext.session import DiscardConfirmationRequired, open_session
from chessnext.state import LastMove, default_state
from chessnext.store import GameStateStore, MemoryStore


def _save_started(store: GameStateStore, difficulty: str) -> None:
    state = default_state(difficulty)
    board = chess.Board()
    board.push_uci("c2c4")
    state.record_move(board.fen(), LastMove("c2", "c4", None, "c4"))
    store.save(state)


class OpenSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = GameStateStore(MemoryStore())

    def test_fresh_store_starts_default_game(self) -> None:
        state = open_session(self.store, "Intermediate")
        self.assertEqual(state.difficulty, "intermediate")
        self.assertFalse(state.game_started)
        self.assertEqual(self.store.load(), state)

    def test_same_tier_resumes_saved_game(self) -> None:
        _save_started(self.store, "easy")
        state = open_session(self.store, "EASY")
        self.assertTrue(state.game_started)
        self.assertEqual(state.current_move, 2)

    def test_different_tier_requires_confirmation(self) -> None:
        _save_started(self.store, "easy")
        with self.assertRaises(DiscardConfirmationRequired) as ctx:
            open_session(self.store, "hard")
        self.assertEqual(ctx.exception.saved_difficulty, "easy")
        self.assertEqual(ctx.exception.requested, "hard")
        self.assertEqual(self.store.load().difficulty, "easy")

    def test_confirmed_switch_discards_saved_game(self) -> None:
        _save_started(self.store, "easy")
        state = open_session(self.store, "hard", confirm=True)
        self.assertEqual(state.difficulty, "hard")
        self.assertFalse(state.game_started)
        self.assertEqual(self.store.load(), state)

    def test_unstarted_game_at_other_tier_is_replaced_silently(self) -> None:
        self.store.save(default_state("easy"))
        state = open_session(self.store, "master")
        self.assertEqual(state.difficulty, "master")

    def test_unknown_tier_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            open_session(self.store, "impossible")
