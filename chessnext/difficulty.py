"""
Difficulty tiers and their mapping onto the engine's UCI "Skill Level".

The menu metadata (display names, descriptions) lives here too so the web
and CLI entry points present the same list in the same order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

Tier = Literal[
    "beginner",
    "easy",
    "intermediate",
    "advanced",
    "hard",
    "expert",
    "master",
    "grandmaster",
]

# Weakest to strongest. Skill values must stay strictly increasing.
DIFFICULTY_LEVELS: dict[Tier, int] = {
    "beginner": 2,
    "easy": 5,
    "intermediate": 8,
    "advanced": 11,
    "hard": 14,
    "expert": 17,
    "master": 20,
    "grandmaster": 23,
}

TIERS: tuple[Tier, ...] = tuple(DIFFICULTY_LEVELS)

# Used for unknown or missing tiers instead of failing.
DEFAULT_SKILL = 10


@dataclass(frozen=True)
class TierInfo:
    name: Tier         # canonical tier, e.g. "beginner"
    display_name: str
    description: str

    @property
    def skill(self) -> int:
        return DIFFICULTY_LEVELS[self.name]

    @property
    def href(self) -> str:
        return f"/play/{self.name}"


TIER_INFO: tuple[TierInfo, ...] = (
    TierInfo("beginner", "Beginner", "Learn the basics with a bot that makes predictable moves."),
    TierInfo("easy", "Easy", "Practice basic strategies with slightly improved moves."),
    TierInfo("intermediate", "Intermediate", "Test your skills against a bot with moderate tactical awareness."),
    TierInfo("advanced", "Advanced", "Face stronger tactical play and strategic planning."),
    TierInfo("hard", "Hard", "Challenge yourself with advanced strategies and combinations."),
    TierInfo("expert", "Expert", "Test yourself against sophisticated positional understanding."),
    TierInfo("master", "Master", "Face the second strongest bot with sophisticated chess understanding."),
    TierInfo("grandmaster", "Grandmaster", "Challenge the ultimate bot with masterful chess execution."),
)


def normalize_tier(name: str | None) -> Tier | None:
    """Return the canonical lower-case tier for *name*, or None if unknown."""
    if not isinstance(name, str):
        return None
    tier = name.strip().lower()
    return tier if tier in DIFFICULTY_LEVELS else None


def map_difficulty(tier: str | None) -> int:
    """
    Skill level for a tier.

    Unknown tiers fall back to DEFAULT_SKILL (logged) rather than raising.
    """
    canonical = normalize_tier(tier)
    if canonical is None:
        logger.warning("Unknown difficulty %r, using skill %d", tier, DEFAULT_SKILL)
        return DEFAULT_SKILL
    return DIFFICULTY_LEVELS[canonical]


def tier_info(tier: str) -> TierInfo | None:
    canonical = normalize_tier(tier)
    for info in TIER_INFO:
        if info.name == canonical:
            return info
    return None
