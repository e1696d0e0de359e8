#!/usr/bin/env python3
"""
Tests for SecurityEngine routing, allowlist, env switches and protected paths.
"""

import sys
from pathlib import Path
from unittest import TestCase, main as unittest_main
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / "hooks"))

from allowlist import AllowEntry, AllowlistError, CompiledAllowlist, compile_allowlist
from config import Config
from decision import Allow, Deny, Warn, is_allow, is_deny
from engine import DISABLED_VAR, WARN_ONLY_VAR, SecurityEngine
from hook_input import HookInput, parse_tool_input
from rules import SafetyLevel


def make_input(tool_name, **tool_input):
    return HookInput(tool_name=tool_name, tool_input=parse_tool_input(tool_input))


def make_engine(environ=None, allowlist=None, **config_overrides):
    config = Config()
    config.overrides.allowlist_file = None
    for key, value in config_overrides.items():
        section, name = key.split("__")
        setattr(getattr(config, section), name, value)
    return SecurityEngine(config, environ=environ or {}, allowlist=allowlist)


class TestRouting(TestCase):

    def setUp(self):
        self.engine = make_engine()

    def test_bash(self):
        decision = self.engine.check(make_input("Bash", command="rm -rf /"))
        self.assertEqual(decision.rule_id, "rm-root")
        self.assertTrue(is_allow(self.engine.check(make_input("Bash", command="ls"))))

    def test_read(self):
        decision = self.engine.check(make_input("Read", file_path="/project/.env"))
        self.assertEqual(decision.rule_id, "env-file")

    def test_edit(self):
        decision = self.engine.check(
            make_input("Edit", file_path="~/.ssh/id_rsa", old_string="a", new_string="b")
        )
        self.assertEqual(decision.rule_id, "ssh-private-key")

    def test_write(self):
        decision = self.engine.check(make_input("Write", file_path="server.pem", content="x"))
        self.assertEqual(decision.rule_id, "pem-file")
        self.assertEqual(
            self.engine.check(make_input("Write", file_path="src/app.py", content="x")),
            Allow("file path passed all checks"),
        )

    def test_unknown_tool(self):
        decision = self.engine.check(make_input("WebFetch", url="https://example.com"))
        self.assertEqual(decision, Allow("unknown tool type - passing through"))

    def test_safety_level_from_config(self):
        engine = make_engine(general__safety_level=SafetyLevel.CRITICAL)
        self.assertTrue(is_allow(engine.check(make_input("Bash", command="git reset --hard"))))
        engine = make_engine(general__safety_level=SafetyLevel.STRICT)
        self.assertEqual(
            engine.check(make_input("Bash", command="docker system prune")).rule_id,
            "docker-system-prune",
        )


class TestEnvironmentSwitches(TestCase):

    def test_disabled(self):
        engine = make_engine(environ={DISABLED_VAR: "1"})
        self.assertTrue(engine.is_disabled())
        decision = engine.check(make_input("Bash", command="rm -rf /"))
        self.assertEqual(decision, Allow(f"disabled via {DISABLED_VAR}"))

    def test_any_value_counts(self):
        self.assertTrue(make_engine(environ={DISABLED_VAR: ""}).is_disabled())
        self.assertFalse(make_engine(environ={}).is_disabled())

    def test_warn_only(self):
        engine = make_engine(environ={WARN_ONLY_VAR: "1"})
        decision = engine.check(make_input("Bash", command="rm -rf /"))
        self.assertIsInstance(decision, Warn)
        self.assertEqual(decision.rule_id, "rm-root")

    def test_warn_only_keeps_allows(self):
        engine = make_engine(environ={WARN_ONLY_VAR: "1"})
        self.assertEqual(
            engine.check(make_input("Bash", command="ls")), Allow("passed all checks")
        )

    def test_disabled_wins_over_warn_only(self):
        engine = make_engine(environ={DISABLED_VAR: "1", WARN_ONLY_VAR: "1"})
        self.assertTrue(is_allow(engine.check(make_input("Read", file_path=".env"))))


class TestAllowlist(TestCase):

    def test_bash_allowlisted(self):
        allowlist = compile_allowlist([AllowEntry(r"^git reset --hard$", "local resets", "Bash")])
        engine = make_engine(allowlist=allowlist)
        decision = engine.check(make_input("Bash", command="git reset --hard"))
        self.assertEqual(decision, Allow("allowlisted: local resets"))

    def test_file_allowlisted(self):
        allowlist = compile_allowlist([AllowEntry(r"fixtures/\.env$", "test fixture", "Read")])
        engine = make_engine(allowlist=allowlist)
        self.assertEqual(
            engine.check(make_input("Read", file_path="tests/fixtures/.env")),
            Allow("allowlisted: test fixture"),
        )
        # Scoped to Read only
        self.assertTrue(is_deny(
            engine.check(make_input("Write", file_path="tests/fixtures/.env", content=""))
        ))

    def test_empty_allowlist(self):
        engine = make_engine(allowlist=CompiledAllowlist.empty())
        self.assertTrue(is_deny(engine.check(make_input("Bash", command="rm -rf /"))))

    def test_broken_allowlist_file_ignored(self):
        config = Config()
        config.overrides.allowlist_file = "/nonexistent/cmdguard/allow.yaml"
        with patch("engine.load_allowlist", side_effect=AllowlistError("bad")):
            with patch("sys.stderr") as stderr:
                engine = SecurityEngine(config, environ={})
        self.assertTrue(stderr.write.called)
        self.assertTrue(engine.allowlist.is_empty())


class TestConfigSwitches(TestCase):

    def test_bash_switches_passed_through(self):
        engine = make_engine(bash__block_variable_commands=False, bash__block_pipe_to_shell=False)
        self.assertTrue(is_allow(engine.check(make_input("Bash", command="$cmd x"))))
        self.assertTrue(is_allow(engine.check(make_input("Bash", command="cat s | bash"))))

    def test_custom_wrappers(self):
        engine = make_engine(bash__wrappers=["chronic"])
        decision = engine.check(make_input("Bash", command="chronic rm -rf /"))
        self.assertEqual(decision.rule_id, "rm-root")

    def test_protected_patterns(self):
        engine = make_engine(files__protected_patterns=[r"^/srv/prod/"])
        decision = engine.check(make_input("Edit", file_path="/srv/prod/app.py",
                                           old_string="a", new_string="b"))
        self.assertEqual(
            decision, Deny("protected-path", "Path matches protected pattern '^/srv/prod/'")
        )
        self.assertTrue(is_allow(engine.check(make_input("Read", file_path="/srv/dev/app.py"))))

    def test_secret_rules_before_protected_patterns(self):
        engine = make_engine(files__protected_patterns=[r"\.env$"])
        self.assertEqual(engine.check(make_input("Read", file_path=".env")).rule_id, "env-file")


if __name__ == "__main__":
    unittest_main()
