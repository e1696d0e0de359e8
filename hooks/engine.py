#!/usr/bin/env python3
"""
Security engine: routes a hook payload to the right checker.

Environment switches (any value turns them on):
  CMDGUARD_DISABLED   allow everything, still audited as DISABLED
  CMDGUARD_WARN_ONLY  turn every block into a warning
"""

import os
import sys
from typing import Mapping, Optional

from allowlist import AllowlistError, CompiledAllowlist, load_allowlist
from bash_checker import check_command
from config import Config
from decision import Allow, Decision, Deny, to_warn
from file_checker import check_path, compile_protected_patterns, is_protected_path
from hook_input import BashInput, EditInput, HookInput, ReadInput, WriteInput
from rule_tables import get_dangerous_rules, get_exfiltration_rules, get_secret_rules
from rules import RuleSet

DISABLED_VAR = "CMDGUARD_DISABLED"
WARN_ONLY_VAR = "CMDGUARD_WARN_ONLY"


class SecurityEngine:
    def __init__(
        self,
        config: Optional[Config] = None,
        environ: Optional[Mapping[str, str]] = None,
        allowlist: Optional[CompiledAllowlist] = None,
    ):
        self.config = config if config is not None else Config()
        self.environ = environ if environ is not None else os.environ
        self.safety_level = self.config.general.safety_level

        # Invalid rule patterns raise RuleCompileError here, before any check runs
        self.dangerous_rules = RuleSet(get_dangerous_rules(self.safety_level))
        self.exfiltration_rules = RuleSet(get_exfiltration_rules(self.safety_level))
        self.secret_rules = RuleSet(get_secret_rules(self.safety_level))
        self.protected_patterns = compile_protected_patterns(self.config.files.protected_patterns)

        self.allowlist = allowlist if allowlist is not None else self._load_allowlist()

    def _load_allowlist(self) -> CompiledAllowlist:
        path = self.config.allowlist_file()
        if path is None:
            return CompiledAllowlist.empty()
        try:
            return load_allowlist(path)
        except AllowlistError as e:
            print(f"Warning: Ignoring allowlist: {e}", file=sys.stderr)
            return CompiledAllowlist.empty()

    def is_disabled(self) -> bool:
        return DISABLED_VAR in self.environ

    def is_warn_only(self) -> bool:
        return WARN_ONLY_VAR in self.environ

    def check(self, hook_input: HookInput) -> Decision:
        if self.is_disabled():
            return Allow(f"disabled via {DISABLED_VAR}")

        tool_input = hook_input.tool_input
        if isinstance(tool_input, BashInput):
            decision = self.check_bash(tool_input.command)
        elif isinstance(tool_input, (ReadInput, EditInput, WriteInput)):
            decision = self.check_file(hook_input.tool_name, tool_input.file_path)
        else:
            decision = Allow("unknown tool type - passing through")

        if self.is_warn_only():
            decision = to_warn(decision)
        return decision

    def check_bash(self, command: str) -> Decision:
        reason = self.allowlist.matches("Bash", command)
        if reason is not None:
            return Allow(f"allowlisted: {reason}")

        return check_command(
            command,
            self.safety_level,
            self.dangerous_rules,
            self.exfiltration_rules,
            self.config.bash.wrappers,
            block_variable_commands=self.config.bash.block_variable_commands,
            block_pipe_to_shell=self.config.bash.block_pipe_to_shell,
        )

    def check_file(self, tool: str, file_path: str) -> Decision:
        reason = self.allowlist.matches(tool, file_path)
        if reason is not None:
            return Allow(f"allowlisted: {reason}")

        decision = check_path(file_path, self.safety_level, self.secret_rules)
        if isinstance(decision, Deny):
            return decision

        pattern = is_protected_path(file_path, self.protected_patterns)
        if pattern is not None:
            return Deny("protected-path", f"Path matches protected pattern '{pattern}'")
        return decision
