"""
Game-state persistence.

A KeyValueStore is the durable backend (a JSON file on disk, or memory in
tests); GameStateStore keeps one named record in it. Nothing here raises into
the caller: unreadable or invalid records read as "no saved game", and
backend failures are logged so play can continue unpersisted.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from chessnext.state import GameState, StateValidationError

logger = logging.getLogger(__name__)

STORAGE_KEY = "chess-game-state"


class StorageError(Exception):
    """The storage backend could not be read or written."""


class KeyValueStore(Protocol):
    """String key → string value storage."""

    def get(self, key: str) -> str | None:
        """Stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Create or overwrite *key*."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key*; absent keys are not an error."""
        ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """All keys in a single JSON object file, rewritten on every change."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Storage file %s is not valid UTF-8 JSON; treating it as empty", self._path)
            return {}
        except OSError as exc:
            raise StorageError(f"cannot read {self._path}: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise StorageError(f"cannot write {self._path}: {exc}") from exc


class GameStateStore:
    """load / save / clear for the single saved game."""

    def __init__(self, kv: KeyValueStore, key: str = STORAGE_KEY) -> None:
        self._kv = kv
        self._key = key

    def load(self) -> GameState | None:
        try:
            raw = self._kv.get(self._key)
        except StorageError as exc:
            logger.warning("Could not read saved game: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return GameState.from_dict(json.loads(raw))
        except json.JSONDecodeError as exc:
            logger.warning("Saved game is not valid JSON, ignoring it: %s", exc)
        except StateValidationError as exc:
            logger.warning("Saved game failed validation, ignoring it: %s", exc)
        return None

    def save(self, state: GameState) -> bool:
        """Overwrite the saved game. Returns False if the backend failed."""
        try:
            self._kv.set(self._key, json.dumps(state.to_dict()))
        except StorageError as exc:
            logger.warning("Could not save game, continuing unpersisted: %s", exc)
            return False
        return True

    def clear(self) -> bool:
        try:
            self._kv.delete(self._key)
        except StorageError as exc:
            logger.warning("Could not clear saved game: %s", exc)
            return False
        return True

    def saved_difficulty(self) -> str | None:
        """Difficulty of the saved game, if one was actually started."""
        state = self.load()
        return state.difficulty if state and state.game_started else None


def is_active_different_game(stored: GameState | None, requested_tier: str) -> bool:
    """True when starting *requested_tier* would discard a started game at another tier."""
    if stored is None or not stored.game_started:
        return False
    return stored.difficulty.lower() != requested_tier.strip().lower()
