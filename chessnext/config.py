"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class EngineConfig:
    path: str = "stockfish"   # UCI binary, resolved on PATH
    think_time: float = 1.0   # seconds per engine move ("go movetime 1000")
    reply_delay: float = 0.5  # pause before the engine starts thinking


@dataclass
class StorageConfig:
    path: str = "./.chessnext_state.json"
    key: str = "chess-game-state"


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @property
    def storage_path(self) -> Path:
        return Path(self.storage.path)


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and adjust the engine path."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        engine_raw = raw.get("engine") or {}
        engine_cfg = EngineConfig(
            path=str(engine_raw.get("path", "stockfish")),
            think_time=float(engine_raw.get("think_time", 1.0)),
            reply_delay=float(engine_raw.get("reply_delay", 0.5)),
        )

        storage_raw = raw.get("storage") or {}
        storage_cfg = StorageConfig(
            path=str(storage_raw.get("path", "./.chessnext_state.json")),
            key=str(storage_raw.get("key", "chess-game-state")),
        )

        config = Config(engine=engine_cfg, storage=storage_cfg)
        _validate(config)
        return config

    except (AttributeError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def load_config_or_default(path: str | Path = "config.yaml") -> Config:
    """Like load_config(), but an absent file means built-in defaults."""
    if not Path(path).exists():
        return Config()
    return load_config(path)


def _validate(config: Config) -> None:
    if config.engine.think_time <= 0:
        raise ValueError("engine.think_time must be > 0")
    if config.engine.reply_delay < 0:
        raise ValueError("engine.reply_delay must be >= 0")
    if not config.storage.key:
        raise ValueError("storage.key must not be empty")
