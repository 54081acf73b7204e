import os
import unittest
from pathlib import Path
from unittest.mock import patch

from agf import config
from agf.errors import ConfigurationError

HOME = Path("/home/dev")


class LocationResolutionTests(unittest.TestCase):
    def test_default_layout(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(config.sys, "platform", "linux"):
            locations = config.resolve_locations(HOME)

        self.assertEqual(locations.claude_dir, HOME / ".claude")
        self.assertEqual(locations.codex_dir, HOME / ".codex")
        self.assertEqual(locations.pi_sessions_dir, HOME / ".pi" / "agent" / "sessions")
        self.assertEqual(locations.opencode_db, HOME / ".local" / "share" / "opencode" / "opencode.db")
        self.assertEqual(locations.kiro_db, HOME / ".local" / "share" / "kiro-cli" / "data.sqlite3")
        self.assertEqual(locations.cursor_dir, HOME / ".cursor")
        self.assertEqual(locations.gemini_dir, HOME / ".gemini")

    def test_macos_uses_application_support_for_kiro_only(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(config.sys, "platform", "darwin"):
            locations = config.resolve_locations(HOME)

        self.assertEqual(locations.kiro_dir, HOME / "Library" / "Application Support" / "kiro-cli")
        self.assertEqual(locations.opencode_dir, HOME / ".local" / "share" / "opencode")

    def test_environment_overrides(self) -> None:
        env = {"AGF_CLAUDE_DIR": "/srv/claude", "XDG_DATA_HOME": "/data", "AGF_GEMINI_DIR": "  "}
        with patch.dict(os.environ, env, clear=True), patch.object(config.sys, "platform", "linux"):
            locations = config.resolve_locations(HOME)

        self.assertEqual(locations.claude_dir, Path("/srv/claude"))
        self.assertEqual(locations.opencode_dir, Path("/data/opencode"))
        self.assertEqual(locations.kiro_dir, Path("/data/kiro-cli"))
        self.assertEqual(locations.gemini_dir, HOME / ".gemini")

    def test_missing_home_is_a_configuration_error(self) -> None:
        with patch("agf.config.Path.home", side_effect=RuntimeError("Could not determine home directory.")):
            with self.assertRaises(ConfigurationError):
                config.home_dir()
            with self.assertRaises(ConfigurationError):
                config.load_scan_config()

    def test_scan_config_uses_module_defaults(self) -> None:
        with patch.object(config, "MAX_SUMMARIES", 3), patch.object(config, "SCAN_TIMEOUT_SECONDS", 0.0), patch.object(
            config, "MAX_SESSIONS", 50
        ):
            scan_config = config.load_scan_config(HOME)

        self.assertEqual(scan_config.max_summaries, 3)
        self.assertIsNone(scan_config.adapter_timeout)
        self.assertEqual(scan_config.limit, 50)
        self.assertEqual(scan_config.locations.codex_dir.name, ".codex")


class EnvHelperTests(unittest.TestCase):
    def test_env_parsers(self) -> None:
        env = {"FLAG": "Yes", "COUNT": "12", "BAD_COUNT": "twelve", "RATIO": "0.5"}
        with patch.dict(os.environ, env, clear=True):
            self.assertTrue(config._env_bool("FLAG"))
            self.assertTrue(config._env_bool("UNSET", True))
            self.assertEqual(config._env_int("COUNT", 1), 12)
            self.assertEqual(config._env_int("BAD_COUNT", 1), 1)
            self.assertIsNone(config._env_int("UNSET", None))
            self.assertEqual(config._env_float("RATIO", 1.0), 0.5)
            self.assertIsNone(config._env_path("UNSET"))


if __name__ == "__main__":
    unittest.main()
