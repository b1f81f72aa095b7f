import tempfile
import unittest
from pathlib import Path

from chessnext.config import Config, load_config, load_config_or_default


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.dir = Path(tmp.name)

    def _write(self, text: str) -> Path:
        path = self.dir / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_full_config(self) -> None:
        path = self._write(
            "engine:\n"
            "  path: /usr/games/stockfish\n"
            "  think_time: 0.5\n"
            "  reply_delay: 0\n"
            "storage:\n"
            "  path: ./state.json\n"
            "  key: my-game\n"
        )
        cfg = load_config(path)
        self.assertEqual(cfg.engine.path, "/usr/games/stockfish")
        self.assertEqual(cfg.engine.think_time, 0.5)
        self.assertEqual(cfg.engine.reply_delay, 0.0)
        self.assertEqual(cfg.storage.key, "my-game")
        self.assertEqual(cfg.storage_path, Path("./state.json"))

    def test_empty_file_uses_defaults(self) -> None:
        cfg = load_config(self._write(""))
        self.assertEqual(cfg, Config())

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(self.dir / "absent.yaml")

    def test_missing_file_defaults_when_optional(self) -> None:
        self.assertEqual(load_config_or_default(self.dir / "absent.yaml"), Config())

    def test_invalid_values_raise_value_error(self) -> None:
        with self.assertRaises(ValueError):
            load_config(self._write("engine:\n  think_time: 0\n"))
        with self.assertRaises(ValueError):
            load_config(self._write("engine:\n  think_time: fast\n"))
        with self.assertRaises(ValueError):
            load_config(self._write("engine: [1, 2]\n"))
