#!/usr/bin/env python3
"""
Tests for config loading and validation.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from unittest import TestCase, main as unittest_main
from unittest.mock import patch

import yaml

sys.path.insert(0, str(Path(__file__).parent.parent / "hooks"))

import config as config_module
from config import (
    DEFAULT_CONFIG_YAML,
    Config,
    ConfigError,
    expand_path,
    load_config,
    load_config_file,
)
from rules import SafetyLevel
from wrappers import DEFAULT_WRAPPERS


class TestDefaults(TestCase):

    def test_defaults(self):
        config = Config()
        self.assertEqual(config.general.safety_level, SafetyLevel.HIGH)
        self.assertTrue(config.general.audit_log)
        self.assertEqual(config.bash.wrappers, list(DEFAULT_WRAPPERS))
        self.assertTrue(config.bash.block_variable_commands)
        self.assertTrue(config.bash.block_pipe_to_shell)
        self.assertEqual(config.files.protected_patterns, [])

    def test_default_yaml_matches_defaults(self):
        self.assertEqual(Config.from_dict(yaml.safe_load(DEFAULT_CONFIG_YAML)), Config())

    def test_wrapper_list_not_shared(self):
        a, b = Config(), Config()
        a.bash.wrappers.append("chroot")
        self.assertNotIn("chroot", b.bash.wrappers)


class TestFromDict(TestCase):

    def test_none(self):
        self.assertEqual(Config.from_dict(None), Config())

    def test_partial(self):
        config = Config.from_dict({"general": {"safety_level": "strict"}})
        self.assertEqual(config.general.safety_level, SafetyLevel.STRICT)
        self.assertTrue(config.bash.block_pipe_to_shell)

    def test_all_sections(self):
        config = Config.from_dict({
            "general": {"safety_level": "Critical", "audit_log": False, "audit_path": "/tmp/a.jsonl"},
            "overrides": {"allowlist_file": None},
            "bash": {"wrappers": ["sudo"], "block_variable_commands": False,
                     "block_pipe_to_shell": False},
            "files": {"protected_patterns": [r"/srv/prod/"]},
        })
        self.assertEqual(config.general.safety_level, SafetyLevel.CRITICAL)
        self.assertFalse(config.general.audit_log)
        self.assertIsNone(config.overrides.allowlist_file)
        self.assertEqual(config.bash.wrappers, ["sudo"])
        self.assertFalse(config.bash.block_variable_commands)
        self.assertFalse(config.bash.block_pipe_to_shell)
        self.assertEqual(config.files.protected_patterns, [r"/srv/prod/"])

    def test_unknown_level_rejected(self):
        with self.assertRaises(ConfigError) as ctx:
            Config.from_dict({"general": {"safety_level": "paranoid"}})
        self.assertIn("general/safety_level", str(ctx.exception))

    def test_wrong_type_rejected(self):
        with self.assertRaises(ConfigError):
            Config.from_dict({"bash": {"block_pipe_to_shell": "yes"}})
        with self.assertRaises(ConfigError):
            Config.from_dict(["not", "a", "mapping"])


class TestPaths(TestCase):

    def test_expand_path(self):
        with patch.object(config_module.Path, "home", return_value=Path("/home/tester")):
            self.assertEqual(expand_path("~/.cmdguard/x"), Path("/home/tester/.cmdguard/x"))
        self.assertEqual(expand_path("/var/log/a"), Path("/var/log/a"))

    def test_audit_file(self):
        config = Config.from_dict({"general": {"audit_path": "/tmp/audit.jsonl"}})
        self.assertEqual(config.audit_file(), Path("/tmp/audit.jsonl"))
        config.general.audit_log = False
        self.assertIsNone(config.audit_file())

    def test_allowlist_file(self):
        self.assertIsNone(Config.from_dict({"overrides": {"allowlist_file": None}}).allowlist_file())
        config = Config.from_dict({"overrides": {"allowlist_file": "/etc/cmdguard/allow.yaml"}})
        self.assertEqual(config.allowlist_file(), Path("/etc/cmdguard/allow.yaml"))


class TestLoadConfig(TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write(self, name, text):
        path = self.temp_dir / name
        path.write_text(text)
        return path

    def test_load_file(self):
        path = self.write("config.yaml", "general:\n  safety_level: critical\n")
        self.assertEqual(load_config_file(path).general.safety_level, SafetyLevel.CRITICAL)

    def test_load_file_invalid_yaml(self):
        path = self.write("config.yaml", "general: [oops\n")
        with self.assertRaises(ConfigError):
            load_config_file(path)

    def test_load_file_missing(self):
        with self.assertRaises(ConfigError):
            load_config_file(self.temp_dir / "nope.yaml")

    def test_first_existing_wins(self):
        user = self.write("user.yaml", "general:\n  safety_level: strict\n")
        system = self.write("system.yaml", "general:\n  safety_level: critical\n")
        config = load_config([self.temp_dir / "missing.yaml", user, system])
        self.assertEqual(config.general.safety_level, SafetyLevel.STRICT)

    def test_invalid_file_skipped(self):
        bad = self.write("bad.yaml", "general:\n  safety_level: 3\n")
        good = self.write("good.yaml", "general:\n  safety_level: critical\n")
        with patch("sys.stderr") as stderr:
            config = load_config([bad, good])
        self.assertTrue(stderr.write.called)
        self.assertEqual(config.general.safety_level, SafetyLevel.CRITICAL)

    def test_nothing_found(self):
        self.assertEqual(load_config([self.temp_dir / "missing.yaml"]), Config())


if __name__ == "__main__":
    unittest_main()
