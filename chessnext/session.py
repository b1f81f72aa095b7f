"""
Difficulty entry points: decide whether to resume, start, or ask first.

Picking a tier while a started game at a different tier is saved must be
confirmed, because the saved game is discarded.
"""

from __future__ import annotations

import logging

from chessnext.difficulty import normalize_tier
from chessnext.state import GameState, default_state
from chessnext.store import GameStateStore, is_active_different_game

logger = logging.getLogger(__name__)


class DiscardConfirmationRequired(Exception):
    """Opening the requested tier would discard a saved game."""

    def __init__(self, saved_difficulty: str, requested: str) -> None:
        super().__init__(
            f"A {saved_difficulty} game is in progress; starting {requested} will discard it."
        )
        self.saved_difficulty = saved_difficulty
        self.requested = requested


def open_session(store: GameStateStore, tier: str, *, confirm: bool = False) -> GameState:
    """
    Return the game to play at *tier*.

    Resumes the saved game if it is at the same tier, otherwise starts fresh.

    Raises:
        ValueError: *tier* is not a known difficulty.
        DiscardConfirmationRequired: a different started game is saved and
            *confirm* is False.
    """
    canonical = normalize_tier(tier)
    if canonical is None:
        raise ValueError(f"Unknown difficulty: {tier!r}")

    stored = store.load()
    if stored is not None and is_active_different_game(stored, canonical):
        if not confirm:
            raise DiscardConfirmationRequired(stored.difficulty, canonical)
        logger.info("Discarding saved %s game for a new %s game", stored.difficulty, canonical)
        store.clear()
        stored = None

    if stored is not None and stored.difficulty == canonical:
        return stored

    state = default_state(canonical)
    store.save(state)
    return state
